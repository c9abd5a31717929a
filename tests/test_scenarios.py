"""End-to-end tests: lower a program, check the code, then run it."""

from __future__ import annotations

import pytest

from tempbind import CompileError, Transformer, lower_source, transform
from tempbind.config import LowerConfig, TempbindConfig
from tempbind.constructs import ConstructState
from tempbind.interp import Interpreter
from tests.helpers import lower, lower_fails, lower_result, lower_warns, run, run_plain

PROGRAMS = [
    "const($) x = 10, $ + 2, $ * 2;\nconsole.log(x);\n",
    "function last(xs) {\n  return let(a) = xs, a[a.length - 1];\n}\nconsole.log(last([1, 2, 3]));\n",
    "const r = [let(_) = 6, [1, 9, 4].filter(n => n < _), _.sort(), _[0]];\nconsole.log(r);\n",
    "const($) a = 1, [$, let($) = $ + 1, $ * 10];\nconsole.log(a);\n",
    "var($) s = \"ab\", $ + $, $.toUpperCase();\nconsole.log(s);\n",
    "if (true) const($) x = 2, $ * $;\nconsole.log(typeof x);\n",
    "const o = {v: 5, get: function () { return let(_) = this.v, _ + 1; }};\nconsole.log(o.get());\n",
    "let t = 0;\nfor (let i = 0; i < 3; i++) {\n  const($) x = i, $ * 2, $ + 1;\n  t += x;\n}\nconsole.log(t);\n",
]


class TestScenarios:
    def test_declaration_pipeline(self):
        source = "const($) x = 10, $ + 2, $ * 2;\nconsole.log(x);\n"
        assert lower(source) == (
            "let _tb1 = 10;\n"
            "const x = (_tb1 = _tb1 + 2, _tb1 = _tb1 * 2);\n"
            "console.log(x);\n"
        )
        interp = run(source)
        assert interp.global_env.get("x") == 24
        assert interp.output == ["24"]

    def test_first_step_evaluated_once(self):
        source = (
            "let calls = 0;\n"
            "function getArray() {\n"
            "  calls++;\n"
            "  return [1, 2, 3];\n"
            "}\n"
            "const(a) lastItem = getArray(), a[a.length - 1];\n"
        )
        interp = run(source)
        assert interp.global_env.get("lastItem") == 3
        assert interp.global_env.get("calls") == 1

    def test_expression_form_inside_a_larger_expression(self):
        source = (
            "const items = [{score: 5}, {score: 1}, {score: 9}];\n"
            "function calc() { return 6; }\n"
            "function cmp(a, b) { return a.score - b.score; }\n"
            "const top = [let(_) = calc(), items.filter(x => x.score < _), _.sort(cmp), _[0]];\n"
            "console.log(JSON.stringify(top));\n"
            "console.log(typeof _);\n"
        )
        code = lower(source)
        assert "let _tb1 = calc();" in code
        assert "return (_tb1 = items.filter(x => x.score < _tb1), _tb1 = _tb1.sort(cmp), _tb1 = _tb1[0]);" in code
        interp = run(source)
        assert interp.output == ['[{"score":1}]', "undefined"]

    def test_sibling_constructs_get_distinct_names(self):
        source = "const($) a = 1, $ + 1;\nconst($) b = 2, $ * 3;\nconsole.log(a, b);\n"
        code = lower(source)
        assert "let _tb1 = 1;" in code
        assert "let _tb2 = 2;" in code
        assert run(source).output == ["2 6"]

    def test_lowered_code_is_a_fixed_point(self):
        for source in PROGRAMS:
            once = lower(source, shadow_warnings=False)
            assert lower(once) == once, source

    def test_single_step_is_the_first_value(self):
        source = "let n = 0;\nfunction f() { n++; return 7; }\nconst($) x = f();\nconsole.log(x, n);\n"
        assert lower(source).endswith("let _tb1 = f();\nconst x = _tb1;\nconsole.log(x, n);\n")
        assert run(source).output == ["7 1"]

    def test_each_step_runs_exactly_once_in_order(self):
        source = (
            "const log = [];\n"
            "function step(name, v) { log.push(name); return v; }\n"
            "const($) r = step(\"a\", 1), step(\"b\", $ + 1), step(\"c\", $ * 10);\n"
            "console.log(log.join(\"\"), r);\n"
        )
        assert run(source).output == ["abc 20"]

    @pytest.mark.parametrize("source", PROGRAMS)
    def test_targets_agree(self, source):
        es2015 = run(source, shadow_warnings=False).output
        es5 = run(source, target="es5", shadow_warnings=False).output
        assert es2015 == es5

    def test_matches_hand_written_expansion(self):
        source = (
            "const($) x = [3, 1, 2], $.slice(), $.sort(), $.join(\"-\");\n"
            "console.log(x);\n"
        )
        manual = (
            "let t = [3, 1, 2];\n"
            "t = t.slice();\n"
            "t = t.sort();\n"
            "t = t.join(\"-\");\n"
            "const x = t;\n"
            "console.log(x);\n"
        )
        assert run(source).output == run_plain(manual).output == ["1-2-3"]

    def test_closures_see_the_current_value(self):
        interp = run("const($) r = 3, (() => $ * 2)(), $ + 1;\nconsole.log(r);\n")
        assert interp.output == ["7"]

    def test_host_binding_of_the_same_name_is_untouched(self):
        source = "let $ = 100;\nconst($) x = 1, $ + 1;\nconsole.log($, x);\n"
        assert run(source).output == ["100 2"]

    def test_es5_preserves_this(self):
        source = (
            "const o = {v: 5, get: function () { return let(_) = this.v, _ + 1; }};\n"
            "console.log(o.get());\n"
        )
        code = lower(source, target="es5")
        assert ".call(this)" in code
        assert run(source, target="es5").output == ["6"]


class TestDiagnostics:
    def test_malformed_marker_leaves_siblings_intact(self):
        source = "const() bad = 1, 2;\nconst($) good = 1, $ + 1;\nconsole.log(good);\n"
        result = lower_result(source)
        assert [d.code for d in result.errors] == ["E301"]
        assert result.code == "let _tb1 = 1;\nconst good = (_tb1 = _tb1 + 1);\nconsole.log(good);\n"
        interp = Interpreter()
        interp.run(result.module)
        assert interp.output == ["2"]

    def test_incomplete_construct(self):
        diags = lower_fails("const($) x;\nconst($) y = 1, $;\n", "E302")
        assert diags[0].suggestions

    def test_empty_pipeline(self):
        lower_fails("const($) x = ;\n", "E303")

    def test_unresolved_reference(self):
        result = lower_result("const($) x = $ + 1, $;\nconst($) y = 2, $;\n")
        assert [d.code for d in result.errors] == ["E304"]
        assert "const y = " in result.code
        assert "const x" not in result.code

    def test_shadow_warning_is_not_an_error(self):
        diags = lower_warns("let $ = 1;\nconst($) x = $, $ + 1;\n", "W310")
        assert diags[0].severity.value == "warning"

    def test_shadow_warning_can_be_disabled(self):
        result = lower_result("let $ = 1;\nconst($) x = $, $ + 1;\n", shadow_warnings=False)
        assert result.diagnostics == []

    def test_rejected_expression_runs_as_undefined(self):
        result = lower_result("console.log(let($) = , 1);\n")
        assert not result.ok
        interp = Interpreter()
        interp.run(result.module)
        assert interp.output == ["undefined"]

    def test_host_syntax_error_yields_no_code(self):
        result = transform("let x = ;\nconst($) y = 1, $;\n")
        assert result.code is None
        assert result.module is None
        assert [d.code for d in result.errors] == ["E200"]

    def test_declared_global_in_first_step(self):
        source = 'const($) t = $("#a"), $.text();\n'
        assert lower_fails(source, "E304")
        result = lower_result(source, globals=["$"], shadow_warnings=False)
        assert result.diagnostics == []
        assert result.code == 'let _tb1 = $("#a");\nconst t = (_tb1 = _tb1.text());\n'

    def test_syntax_error_in_a_step_keeps_the_rest_of_the_unit(self):
        result = transform("const($) x = 1, $ +;\nconst y = 3;\nconst($) z = 2, $ * 2;\n")
        assert [d.code for d in result.errors] == ["E200"]
        assert result.code == "const y = 3;\nlet _tb1 = 2;\nconst z = (_tb1 = _tb1 * 2);\n"
        states = [r.state for r in result.constructs]
        assert states == [ConstructState.REJECTED, ConstructState.SPLICED]

    def test_lex_error(self):
        result = transform("const x = #;")
        assert result.code is None
        assert result.errors[0].code == "E100"

    def test_diagnostics_in_source_order(self):
        source = (
            "const($) a = $, 1;\n"
            "const() b = 1, 2;\n"
            "function f($) {\n"
            "  return let($) = $, $;\n"
            "}\n"
        )
        result = transform(source)
        assert [d.code for d in result.diagnostics] == ["E304", "E301", "W310"]

    def test_construct_records(self):
        result = lower_result("const() a = 1, 2;\nconst($) b = 1, $;\n")
        records = result.constructs
        assert [r.state for r in records] == [ConstructState.REJECTED, ConstructState.SPLICED]
        assert records[0].codes == ["E301"]
        assert records[1].synthetic == "_tb1"


class TestApi:
    def test_lower_source(self):
        assert lower_source("const($) x = 1, $;") == "let _tb1 = 1;\nconst x = (_tb1 = _tb1);\n"

    def test_lower_source_raises_on_construct_errors(self):
        with pytest.raises(CompileError) as exc:
            lower_source("const() x = 1, 2;")
        assert exc.value.diagnostics[0].code == "E301"

    def test_accepts_full_config(self):
        config = TempbindConfig(lower=LowerConfig(prefix="_q"))
        assert transform("const($) x = 1, $;", config=config).code.startswith("let _q1 = 1;")

    def test_transformer_resets_between_units(self):
        transformer = Transformer()
        first = transformer.transform("const($) x = 1, $;").code
        second = transformer.transform("const($) x = 1, $;").code
        assert first == second

    def test_result_properties(self):
        result = transform("let $ = 1;\nconst($) x = $, $;\n")
        assert result.ok
        assert len(result.warnings) == 1
        assert result.errors == []
