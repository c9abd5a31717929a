"""Tests for the tempbind CLI, config, and error rendering."""

from __future__ import annotations

import pytest
from click.testing import CliRunner
from pygments.token import Name

from tempbind.cli import main
from tempbind.config import (
    ConfigError,
    LowerConfig,
    TempbindConfig,
    find_config,
    load_config,
    resolve_config,
)
from tempbind.errors import (
    CompileError,
    Diagnostic,
    DiagnosticLabel,
    DiagnosticRenderer,
    Severity,
    Suggestion,
)
from tempbind.highlight import TempbindLexer, highlight
from tempbind.project import scaffold
from tempbind.source import SourceFile, Span

LOWERED_MAIN = (
    "let _t1 = 10;\n"
    "const x = (_t1 = _t1 + 2, _t1 = _t1 * 2);\n"
    "console.log(x);\n"
)


@pytest.fixture
def runner():
    return CliRunner()


# --- CLI tests ---


class TestCLI:
    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Temporary Binding" in result.output
        for command in ("lower", "check", "run", "view", "show", "init"):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestLowerCommand:
    def test_single_file_to_stdout(self, runner, project):
        result = runner.invoke(main, ["lower", str(project / "main.tbjs")])
        assert result.exit_code == 0
        assert result.output == LOWERED_MAIN

    def test_target_override(self, runner, project):
        result = runner.invoke(main, ["lower", str(project / "main.tbjs"), "--target", "es5"])
        assert result.exit_code == 0
        assert result.output.startswith("var _t1 = 10;\n")

    def test_prefix_override(self, runner, project):
        result = runner.invoke(main, ["lower", str(project / "main.tbjs"), "--prefix", "tmp"])
        assert result.exit_code == 0
        assert result.output.startswith("let tmp1 = 10;\n")

    def test_invalid_prefix_override(self, runner, project):
        result = runner.invoke(main, ["lower", str(project / "main.tbjs"), "--prefix", "9-"])
        assert result.exit_code == 1
        assert "prefix must be an identifier" in result.output
        assert "let " not in result.output

    def test_unknown_target_is_rejected(self, runner, project):
        result = runner.invoke(main, ["lower", str(project / "main.tbjs"), "--target", "es3"])
        assert result.exit_code != 0

    def test_directory_writes_outputs(self, runner, project):
        result = runner.invoke(main, ["lower", str(project)])
        assert result.exit_code == 0
        assert (project / "main.js").read_text() == LOWERED_MAIN
        util = (project / "lib" / "util.js").read_text()
        assert "let _t1 = xs;" in util
        assert "lowering" in result.output

    def test_quiet(self, runner, project):
        result = runner.invoke(main, ["-q", "lower", str(project)])
        assert result.exit_code == 0
        assert result.output == ""
        assert (project / "main.js").exists()

    def test_out_directory_mirrors_layout(self, runner, project, tmp_path):
        out = tmp_path / "dist"
        result = runner.invoke(main, ["lower", str(project), "-o", str(out)])
        assert result.exit_code == 0
        assert (out / "main.js").read_text() == LOWERED_MAIN
        assert (out / "lib" / "util.js").exists()

    def test_single_file_to_out_file(self, runner, project):
        dest = project / "bundle.js"
        result = runner.invoke(main, ["lower", str(project / "main.tbjs"), "-o", str(dest)])
        assert result.exit_code == 0
        assert dest.read_text() == LOWERED_MAIN

    def test_check_writes_nothing(self, runner, project):
        result = runner.invoke(main, ["lower", str(project), "--check"])
        assert result.exit_code == 0
        assert not (project / "main.js").exists()

    def test_errors_exit_nonzero(self, runner, project):
        (project / "bad.tbjs").write_text("const() x = 1, 2;\n")
        result = runner.invoke(main, ["lower", str(project)])
        assert result.exit_code == 1
        assert "error[E301]" in result.output
        assert not (project / "bad.js").exists()
        assert (project / "main.js").exists()

    def test_refuses_to_overwrite_source(self, runner, project):
        src = project / "main.tbjs"
        result = runner.invoke(main, ["lower", str(src), "-o", str(src)])
        assert result.exit_code == 1
        assert "would overwrite" in result.output
        assert src.read_text().startswith("const($)")

    def test_no_sources(self, runner, tmp_path):
        result = runner.invoke(main, ["lower", str(tmp_path)])
        assert result.exit_code == 0
        assert "no source files" in result.output

    def test_bad_config(self, runner, project):
        (project / "tempbind.toml").write_text('[lower]\ntarget = "es3"\n')
        result = runner.invoke(main, ["lower", str(project)])
        assert result.exit_code == 1
        assert "target must be" in result.output


class TestCheckCommand:
    def test_clean_project(self, runner, project):
        result = runner.invoke(main, ["check", str(project)])
        assert result.exit_code == 0
        assert "checked 2 file(s): 0 error(s), 0 warning(s)" in result.output

    def test_warnings_do_not_fail(self, runner, project):
        (project / "shadow.tbjs").write_text("let $ = 1;\nconst($) y = $, $;\n")
        result = runner.invoke(main, ["check", str(project)])
        assert result.exit_code == 0
        assert "warning[W310]" in result.output
        assert "1 warning(s)" in result.output

    def test_errors_fail(self, runner, project):
        (project / "bad.tbjs").write_text("const($) y = ;\n")
        result = runner.invoke(main, ["check", str(project)])
        assert result.exit_code == 1
        assert "error[E303]" in result.output
        assert "1 error(s)" in result.output


class TestRunCommand:
    def test_run(self, runner, project):
        result = runner.invoke(main, ["run", str(project / "main.tbjs")])
        assert result.exit_code == 0
        assert result.output == "24\n"

    def test_run_es5(self, runner, project):
        result = runner.invoke(main, ["run", str(project / "main.tbjs"), "--target", "es5"])
        assert result.exit_code == 0
        assert result.output == "24\n"

    def test_uncaught_throw(self, runner, tmp_path):
        src = tmp_path / "boom.tbjs"
        src.write_text('console.log(1);\nthrow new Error("boom");\n')
        result = runner.invoke(main, ["run", str(src)])
        assert result.exit_code == 1
        assert "1" in result.output
        assert "error:" in result.output

    def test_lowering_errors_stop_the_run(self, runner, tmp_path):
        src = tmp_path / "bad.tbjs"
        src.write_text("const() x = 1, 2;\nconsole.log(1);\n")
        result = runner.invoke(main, ["run", str(src)])
        assert result.exit_code == 1
        assert "error[E301]" in result.output


class TestViewAndShow:
    def test_view(self, runner, project):
        result = runner.invoke(main, ["view", str(project / "main.tbjs")])
        assert result.exit_code == 0
        assert result.output.startswith("Module")
        assert "TempBindingDecl" in result.output

    def test_view_lowered(self, runner, project):
        result = runner.invoke(main, ["view", str(project / "main.tbjs"), "--lowered"])
        assert result.exit_code == 0
        assert "TempBindingDecl" not in result.output
        assert "VarDecl" in result.output

    def test_view_syntax_error(self, runner, tmp_path):
        src = tmp_path / "bad.tbjs"
        src.write_text("let x = ;\n")
        result = runner.invoke(main, ["view", str(src)])
        assert result.exit_code == 1
        assert "error[E200]" in result.output

    def test_show_plain(self, runner, project):
        result = runner.invoke(main, ["show", str(project / "main.tbjs"), "--no-color"])
        assert result.exit_code == 0
        assert result.output == LOWERED_MAIN

    def test_show_color(self, runner, project):
        result = runner.invoke(main, ["show", str(project / "main.tbjs"), "--color"])
        assert result.exit_code == 0
        assert "\x1b[" in result.output


class TestInitCommand:
    def test_init(self, runner, tmp_path):
        target = tmp_path / "fresh"
        result = runner.invoke(main, ["init", str(target)])
        assert result.exit_code == 0
        assert "created" in result.output
        config = load_config(target / "tempbind.toml")
        assert config.lower.prefix == "_tb"
        assert not (target / "example.tbjs").exists()

    def test_init_options(self, runner, tmp_path):
        result = runner.invoke(
            main, ["init", str(tmp_path), "--target", "es5", "--prefix", "_v", "--example"],
        )
        assert result.exit_code == 0
        config = load_config(tmp_path / "tempbind.toml")
        assert config.lower.target == "es5"
        assert config.lower.prefix == "_v"
        assert (tmp_path / "example.tbjs").exists()

    def test_init_rejects_bad_prefix(self, runner, tmp_path):
        result = runner.invoke(main, ["init", str(tmp_path), "--prefix", "a-b"])
        assert result.exit_code == 1
        assert "prefix must be an identifier" in result.output
        assert not (tmp_path / "tempbind.toml").exists()

    def test_init_refuses_existing(self, runner, project):
        result = runner.invoke(main, ["init", str(project)])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_example_lowers_and_runs(self, runner, tmp_path):
        runner.invoke(main, ["init", str(tmp_path), "--example"])
        result = runner.invoke(main, ["run", str(tmp_path / "example.tbjs")])
        assert result.exit_code == 0
        assert result.output == "24\n"


# --- Config tests ---


class TestConfig:
    def test_find_config_walks_up(self, project):
        assert find_config(project / "lib" / "util.tbjs") == (project / "tempbind.toml").resolve()

    def test_find_config_none(self, tmp_path):
        assert find_config(tmp_path) is None

    def test_load_config(self, project):
        config = load_config(project / "tempbind.toml")
        assert config.lower.prefix == "_t"
        assert config.lower.target == "es2015"
        assert config.lower.shadow_warnings is True
        assert config.output.extension == ".js"
        assert config.output.sources == ["*.tbjs"]
        assert config.path == project / "tempbind.toml"

    def test_missing_sections_use_defaults(self, tmp_path):
        path = tmp_path / "tempbind.toml"
        path.write_text('[lower]\nshadow_warnings = false\n')
        config = load_config(path)
        assert config.lower.prefix == "_tb"
        assert config.lower.shadow_warnings is False
        assert config.output.extension == ".js"

    def test_globals(self, tmp_path):
        path = tmp_path / "tempbind.toml"
        path.write_text('[lower]\nglobals = ["$", "jQuery"]\n')
        assert load_config(path).lower.globals == ["$", "jQuery"]

    def test_resolve_defaults(self, tmp_path):
        config = resolve_config(tmp_path)
        assert config == TempbindConfig()
        assert config.lower == LowerConfig()

    @pytest.mark.parametrize("toml, message", [
        ('[lower]\ntarget = "es3"\n', "target must be"),
        ('[lower]\nprefix = "1x"\n', "prefix must be an identifier"),
        ('[lower]\nprefix = ""\n', "prefix must be an identifier"),
        ('[lower]\nglobals = ["ok", "no-dash"]\n', "globals must be identifiers"),
        ('[output]\nextension = "js"\n', "extension must start with"),
    ])
    def test_invalid_values(self, tmp_path, toml, message):
        path = tmp_path / "tempbind.toml"
        path.write_text(toml)
        with pytest.raises(ConfigError, match=message):
            load_config(path)


class TestScaffold:
    def test_writes_config(self, tmp_path):
        path = scaffold(tmp_path, prefix="_s")
        assert path == tmp_path / "tempbind.toml"
        assert 'prefix = "_s"' in path.read_text()

    def test_example(self, tmp_path):
        scaffold(tmp_path, example=True)
        assert "const($) total" in (tmp_path / "example.tbjs").read_text()

    def test_existing_config(self, project):
        with pytest.raises(FileExistsError):
            scaffold(project)


# --- Error rendering tests ---


def _diag(severity: Severity = Severity.ERROR) -> Diagnostic:
    return Diagnostic(
        severity=severity,
        code="E301",
        message="empty binding marker",
        labels=[DiagnosticLabel(span=Span("f.tbjs", 1, 6, 1, 7), message="name the binding here")],
        suggestions=[Suggestion(message="name the binding", replacement="($)")],
        notes=["a marker holds exactly one identifier"],
    )


class TestDiagnosticRenderer:
    def test_plain(self):
        renderer = DiagnosticRenderer(color=False, sources={"f.tbjs": "const() x = 1, 2;\n"})
        output = renderer.render(_diag())
        assert output.splitlines() == [
            "error[E301] MalformedBindingMarker: empty binding marker",
            "  --> f.tbjs:1:6",
            "       |",
            "     1 | const() x = 1, 2;",
            "       |      ^^",
            "       |   name the binding here",
            "  = note: a marker holds exactly one identifier",
            "  help: name the binding: ($)",
        ]

    def test_multi_line_construct(self):
        source = "const($) x = 1,\n  $ + 1,\n  $ * 2;\n"
        diag = Diagnostic(
            severity=Severity.WARNING,
            code="W310",
            message="temporary binding '$' shadows a variable",
            labels=[DiagnosticLabel(span=Span("f.tbjs", 1, 1, 3, 8), message="")],
        )
        output = DiagnosticRenderer(color=False, sources={"f.tbjs": source}).render(diag)
        assert output.splitlines() == [
            "warning[W310] ShadowWarning: temporary binding '$' shadows a variable",
            "  --> f.tbjs:1:1",
            "       |",
            "     1 | const($) x = 1,",
            "       | ^^^^^^^^^^^^^^^",
            "  ...",
            "     3 |   $ * 2;",
            "       | ^^^^^^^^",
        ]

    def test_secondary_label(self):
        diag = _diag()
        diag.labels.append(
            DiagnosticLabel(span=Span("f.tbjs", 1, 1, 1, 5), message="declared here", style="secondary")
        )
        output = DiagnosticRenderer(color=False, sources={"f.tbjs": "const() x = 1, 2;\n"}).render(diag)
        assert "  ::: f.tbjs:1:1" in output.splitlines()
        assert "       | -----" in output.splitlines()

    def test_unknown_code_has_no_name(self):
        diag = Diagnostic(severity=Severity.NOTE, code="N1", message="hello")
        assert DiagnosticRenderer(color=False).render(diag) == "note[N1]: hello"

    def test_color(self):
        renderer = DiagnosticRenderer(color=True, sources={"f.tbjs": "const() x = 1, 2;\n"})
        output = renderer.render(_diag(Severity.WARNING))
        assert "\033[1;33m" in output
        assert "\033[0m" in output

    def test_missing_source_skips_carets(self):
        renderer = DiagnosticRenderer(color=False)
        output = renderer.render(_diag())
        assert "^" not in output
        assert "--> f.tbjs:1:6" in output

    def test_names(self):
        assert _diag().name == "MalformedBindingMarker"
        assert _diag().is_error
        assert not _diag(Severity.WARNING).is_error

    def test_compile_error_message(self):
        err = CompileError([_diag(), _diag()])
        assert str(err).startswith("2 error(s): empty binding marker")


class TestSourceFile:
    def test_span_text_single_line(self):
        source = SourceFile("const($) x = 1, $;\n", "f.tbjs")
        assert source.span_text(Span("f.tbjs", 1, 6, 1, 8)) == "($)"

    def test_span_text_multi_line(self):
        source = SourceFile("a = 1,\n  2,\n  3;\n")
        assert source.span_text(Span("<stdin>", 1, 5, 3, 3)) == "1,\n  2,\n  3"

    def test_line_at_out_of_range(self):
        assert SourceFile("x;").line_at(5) == ""

    def test_from_path(self, project):
        source = SourceFile.from_path(project / "main.tbjs")
        assert source.name.endswith("main.tbjs")
        assert source.lines[1] == "console.log(x);"

    def test_span_to(self):
        start = Span("f", 1, 2, 1, 3)
        end = Span("f", 2, 1, 2, 4)
        assert start.to(end) == Span("f", 1, 2, 2, 4)


# --- Highlighting tests ---


class TestHighlight:
    def test_marker_binding_is_magic(self):
        tokens = list(TempbindLexer().get_tokens("const($) x = 1, $;"))
        assert (Name.Variable.Magic, "$") in tokens

    def test_plain_passthrough(self):
        code = "let x = 1;\n"
        assert highlight(code, color=False) == code

    def test_colored(self):
        assert "\x1b[" in highlight("const x = 1;\n")
