"""Tests for hygiene resolution and synthetic-name allocation."""

from __future__ import annotations

from tempbind.ast_nodes import RejectedConstruct, TempBindingDecl
from tempbind.constructs import ConstructLog, ConstructState
from tempbind.hygiene import HygieneResolver
from tempbind.printer import Printer
from tempbind.scope import Binding, BindingKind, Scope, SyntheticNames
from tests.helpers import parse, resolve


def printed(source: str, **kwargs) -> str:
    """Helper: resolve source and print it with constructs still in surface form."""
    module, _ = resolve(source, **kwargs)
    return Printer().print(module)


def codes(resolver: HygieneResolver) -> list[str]:
    return [d.code for d in resolver.diagnostics]


class TestScope:
    def test_lookup_walks_parents(self):
        outer = Scope(name="module")
        outer.define(Binding("x", BindingKind.VARIABLE))
        inner = Scope(outer, "block")
        assert inner.lookup("x").kind == BindingKind.VARIABLE
        assert inner.lookup_local("x") is None

    def test_define_returns_existing(self):
        scope = Scope()
        first = Binding("x", BindingKind.VARIABLE)
        assert scope.define(first) is None
        assert scope.define(Binding("x", BindingKind.FUNCTION)) is first

    def test_inner_definition_shadows(self):
        outer = Scope()
        outer.define(Binding("$", BindingKind.VARIABLE))
        inner = Scope(outer)
        inner.define(Binding("$", BindingKind.TEMP, synthetic="_tb1"))
        assert inner.lookup("$").synthetic == "_tb1"
        assert outer.lookup("$").kind == BindingKind.VARIABLE


class TestSyntheticNames:
    def test_counter(self):
        names = SyntheticNames()
        assert [names.fresh(), names.fresh(), names.fresh()] == ["_tb1", "_tb2", "_tb3"]

    def test_skips_reserved(self):
        names = SyntheticNames()
        names.reserve({"_tb1", "_tb3"})
        assert [names.fresh(), names.fresh()] == ["_tb2", "_tb4"]

    def test_custom_prefix(self):
        assert SyntheticNames("$$t").fresh() == "$$t1"

    def test_reset(self):
        names = SyntheticNames()
        names.reserve({"_tb1"})
        names.fresh()
        names.reset()
        assert names.fresh() == "_tb1"


class TestRenaming:
    def test_steps_after_the_first_are_renamed(self):
        assert printed("const($) x = 10, $ + 2, $ * 2;") == (
            "const($) x = 10, _tb1 + 2, _tb1 * 2;\n"
        )

    def test_record_is_resolved(self):
        log = ConstructLog()
        module, _ = parse("const($) x = 10, $ + 2;", log)
        resolved = HygieneResolver(log).resolve(module)
        decl = resolved.body[0]
        assert decl.synthetic == "_tb1"
        record = log.get(decl.index)
        assert record.state == ConstructState.RESOLVED
        assert record.synthetic == "_tb1"

    def test_siblings_get_distinct_names(self):
        source = "const($) a = 1, $ + 1;\nconst($) b = 2, $ * 3;\n"
        assert printed(source) == (
            "const($) a = 1, _tb1 + 1;\n"
            "const($) b = 2, _tb2 * 3;\n"
        )

    def test_collision_with_spelled_identifier(self):
        source = "let _tb1 = 0;\nconst($) x = 1, $ + _tb1;\n"
        assert printed(source) == "let _tb1 = 0;\nconst($) x = 1, _tb2 + _tb1;\n"

    def test_custom_prefix(self):
        assert printed("const(a) b = 1, a;", names=SyntheticNames("_t")) == (
            "const(a) b = 1, _t1;\n"
        )

    def test_references_inside_closures(self):
        assert printed("const($) f = 1, () => $ + 1;") == "const($) f = 1, () => _tb1 + 1;\n"

    def test_arrow_parameter_shadows_binding(self):
        assert printed("const($) x = [1], $.map($ => $ * 2);") == (
            "const($) x = [1], _tb1.map($ => $ * 2);\n"
        )

    def test_var_in_nested_function_shadows_binding(self):
        source = "const($) x = 1, (function () {\n  var $ = 5;\n  return $;\n})();\n"
        assert printed(source) == (
            "const($) x = 1, (function () {\n  var $ = 5;\n  return $;\n})();\n"
        )

    def test_binding_is_invisible_after_the_construct(self):
        assert printed("const($) x = 1, $;\nf($);\n") == "const($) x = 1, _tb1;\nf($);\n"

    def test_function_parameter_in_steps(self):
        source = "function f($) {\n  return let(_) = $, _ + $;\n}\n"
        assert printed(source) == "function f($) {\n  return let(_) = $, _tb1 + $;\n}\n"


class TestNestedConstructs:
    def test_outer_allocated_before_inner(self):
        module, resolver = resolve("const($) a = 1, [$, let($) = $ + 1, $ * 10];")
        outer = module.body[0]
        inner = outer.steps[1].elements[1]
        assert outer.synthetic == "_tb1"
        assert inner.synthetic == "_tb2"
        # Outer reference in the array and in the inner construct's first step
        assert outer.steps[1].elements[0].name == "_tb1"
        assert inner.steps[0].left.name == "_tb1"
        assert inner.steps[1].left.name == "_tb2"

    def test_inner_construct_shadows_outer(self):
        _, resolver = resolve("const($) a = 1, [$, let($) = $ + 1, $ * 10];")
        assert codes(resolver) == ["W310"]
        assert "enclosing construct" in resolver.diagnostics[0].message

    def test_different_names_do_not_warn(self):
        module, resolver = resolve("const($) a = 1, [let(_) = $ + 1, _ + $];")
        inner = module.body[0].steps[1].elements[0]
        assert codes(resolver) == []
        assert inner.steps[1].left.name == "_tb2"
        assert inner.steps[1].right.name == "_tb1"


class TestShadowWarning:
    def test_warns_and_first_step_sees_host_binding(self):
        source = "let $ = 5;\nconst($) x = $ + 1, $ * 2;\n"
        module, resolver = resolve(source)
        assert codes(resolver) == ["W310"]
        diag = resolver.diagnostics[0]
        assert diag.message == "temporary binding '$' shadows a variable"
        assert diag.notes
        assert Printer().print(module) == "let $ = 5;\nconst($) x = $ + 1, _tb1 * 2;\n"

    def test_points_at_the_shadowed_declaration(self):
        _, resolver = resolve("let $ = 5;\nconst($) x = $, $ * 2;\n")
        labels = resolver.diagnostics[0].labels
        assert [label.style for label in labels] == ["primary", "secondary"]
        assert labels[0].span.start_line == 2
        assert labels[1].span.start_line == 1

    def test_parameter_shadow(self):
        _, resolver = resolve("function f(a) {\n  return let(a) = a, a + 1;\n}\n")
        assert "shadows a parameter" in resolver.diagnostics[0].message

    def test_warning_code_recorded_on_construct(self):
        log = ConstructLog()
        module, _ = parse("let $ = 5;\nconst($) x = $, $ * 2;", log)
        HygieneResolver(log).resolve(module)
        record = log.get(0)
        assert record.codes == ["W310"]
        assert record.state == ConstructState.RESOLVED

    def test_can_be_disabled(self):
        _, resolver = resolve("let $ = 5;\nconst($) x = $, $ * 2;", shadow_warnings=False)
        assert resolver.diagnostics == []


class TestUnresolvedReference:
    def test_binding_used_in_first_step(self):
        log = ConstructLog()
        module, _ = parse("const($) x = $, $ + 1;", log)
        resolver = HygieneResolver(log)
        resolved = resolver.resolve(module)
        assert isinstance(resolved.body[0], RejectedConstruct)
        assert codes(resolver) == ["E304"]
        assert resolver.diagnostics[0].message == (
            "'$' is used in the first step of its own temporary binding"
        )
        assert log.get(0).state == ConstructState.REJECTED
        assert log.get(0).codes == ["E304"]

    def test_first_step_closure(self):
        _, resolver = resolve("const(f) g = () => f(), f;")
        assert codes(resolver) == ["E304"]

    def test_each_reference_reported(self):
        _, resolver = resolve("const($) x = $ + $, $;")
        assert codes(resolver) == ["E304", "E304"]

    def test_siblings_still_resolve(self):
        log = ConstructLog()
        module, _ = parse("const($) x = $, 1;\nconst($) y = 2, $ + 1;", log)
        resolved = HygieneResolver(log).resolve(module)
        assert isinstance(resolved.body[0], RejectedConstruct)
        assert isinstance(resolved.body[1], TempBindingDecl)
        assert log.get(1).state == ConstructState.RESOLVED

    def test_enclosing_construct_satisfies_first_step(self):
        _, resolver = resolve("const($) a = 1, let($) = $ + 1, $;")
        assert "E304" not in codes(resolver)


class TestDeclaredGlobals:
    def test_global_satisfies_first_step(self):
        source = 'const($) t = $("#a"), $.text();\n'
        module, resolver = resolve(source, host_globals=["$"], shadow_warnings=False)
        assert resolver.diagnostics == []
        assert Printer().print(module) == 'const($) t = $("#a"), _tb1.text();\n'

    def test_shadowing_a_global_warns(self):
        _, resolver = resolve('const($) t = $("#a"), $.text();', host_globals=["$"])
        assert codes(resolver) == ["W310"]
        assert resolver.diagnostics[0].message == "temporary binding '$' shadows a declared global"

    def test_other_names_still_unresolved(self):
        _, resolver = resolve("const(q) t = q, q;", host_globals=["$"])
        assert codes(resolver) == ["E304"]
