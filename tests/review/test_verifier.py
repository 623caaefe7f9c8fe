"""Tests for call contract verification."""

from __future__ import annotations

import pytest

from simcheck.index.models import DefinitionKind, ParamKind, ReturnUsage
from simcheck.review.models import (
    Candidate,
    MismatchKind,
    ResolutionStage,
    ResultUsage,
    Severity,
)
from simcheck.review.verifier import (
    explicit_receiver,
    extra_positional,
    unbound_required,
    unexpected_keywords,
    verify,
    verify_candidates,
)


class TestArity:
    def test_extra_positional_argument(
        self, call_factory, definition_factory, param_factory
    ) -> None:
        definition = definition_factory(
            "utils.url.isValidUrl",
            [param_factory("url")],
            path="src/utils/url.js",
            language="javascript",
        )
        call = call_factory(
            "isValidUrl", "input", "true", path="src/app/form.js", language="javascript"
        )

        mismatch = verify(call, definition, 0.7)

        assert mismatch is not None
        assert mismatch.kind == MismatchKind.ARITY
        assert mismatch.severity == Severity.CRITICAL
        assert mismatch.confidence == 0.7
        assert extra_positional(call, definition) == (1,)

    def test_rest_parameter_accepts_any_count(
        self, call_factory, definition_factory, param_factory
    ) -> None:
        definition = definition_factory(
            "lib.log", [param_factory("args", kind=ParamKind.VAR_POSITIONAL)]
        )

        assert verify(call_factory("log", "1", "2", "3"), definition) is None

    def test_keyword_only_parameters_take_no_positional(
        self, call_factory, definition_factory, param_factory
    ) -> None:
        definition = definition_factory(
            "lib.f",
            [param_factory("a"), param_factory("key", kind=ParamKind.KEYWORD_ONLY)],
        )

        mismatch = verify(call_factory("f", "1", "2"), definition)

        assert mismatch is not None
        assert mismatch.kind == MismatchKind.ARITY


class TestMissingRequired:
    def test_default_fills_optional_parameter(
        self, call_factory, definition_factory, param_factory
    ) -> None:
        definition = definition_factory(
            "lib.g", [param_factory("a"), param_factory("b", default=True)]
        )

        assert verify(call_factory("g", "1"), definition) is None

    def test_no_arguments(self, call_factory, definition_factory, param_factory) -> None:
        definition = definition_factory(
            "lib.g", [param_factory("a"), param_factory("b", default=True)]
        )
        call = call_factory("g")

        mismatch = verify(call, definition)

        assert mismatch is not None
        assert mismatch.kind == MismatchKind.MISSING_REQUIRED
        assert mismatch.severity == Severity.HIGH
        assert [p.name for p in unbound_required(call, definition)] == ["a"]

    def test_keyword_binds_required(self, call_factory, definition_factory, param_factory) -> None:
        definition = definition_factory("lib.g", [param_factory("a"), param_factory("b")])

        assert verify(call_factory("g", "1", "b=2"), definition) is None

    def test_required_keyword_only(self, call_factory, definition_factory, param_factory) -> None:
        definition = definition_factory(
            "lib.f", [param_factory("a"), param_factory("key", kind=ParamKind.KEYWORD_ONLY)]
        )

        mismatch = verify(call_factory("f", "1"), definition)

        assert mismatch is not None
        assert mismatch.kind == MismatchKind.MISSING_REQUIRED

    def test_typescript_optional_parameter(
        self, call_factory, definition_factory, param_factory
    ) -> None:
        definition = definition_factory(
            "api.load",
            [param_factory("id"), param_factory("opts", optional=True)],
            path="src/api.ts",
            language="typescript",
        )

        assert verify(call_factory("load", "id", language="typescript"), definition) is None


class TestCallThroughClass:
    @pytest.fixture
    def save(self, definition_factory, param_factory):
        return definition_factory(
            "models.Base.save",
            [param_factory("x")],
            kind=DefinitionKind.METHOD,
            container="Base",
            self_parameter="self",
        )

    def test_first_argument_fills_self(self, call_factory, save) -> None:
        call = call_factory("Base.save", "self", "x")

        assert explicit_receiver(call, save) == 1
        assert verify(call, save) is None

    def test_extra_argument_still_caught(self, call_factory, save) -> None:
        mismatch = verify(call_factory("Base.save", "self", "x", "y"), save)

        assert mismatch is not None
        assert mismatch.kind == MismatchKind.ARITY

    def test_only_self_passed(self, call_factory, save) -> None:
        mismatch = verify(call_factory("Base.save", "self"), save)

        assert mismatch is not None
        assert mismatch.kind == MismatchKind.MISSING_REQUIRED

    def test_instance_receiver_does_not_count(self, call_factory, save) -> None:
        assert explicit_receiver(call_factory("self.save", "x"), save) == 0
        assert explicit_receiver(call_factory("record.save", "x"), save) == 0

    def test_static_method_has_no_receiver_slot(
        self, call_factory, definition_factory, param_factory
    ) -> None:
        static = definition_factory(
            "models.Base.build",
            [param_factory("x")],
            kind=DefinitionKind.METHOD,
            container="Base",
        )

        mismatch = verify(call_factory("Base.build", "a", "b"), static)

        assert mismatch is not None
        assert mismatch.kind == MismatchKind.ARITY


class TestUnexpectedArgument:
    def test_unknown_keyword(self, call_factory, definition_factory, param_factory) -> None:
        definition = definition_factory("lib.g", [param_factory("a"), param_factory("b")])
        call = call_factory("g", "1", "b=2", "c=3")

        mismatch = verify(call, definition)

        assert mismatch is not None
        assert mismatch.kind == MismatchKind.UNEXPECTED_ARG
        assert mismatch.severity == Severity.MEDIUM
        assert unexpected_keywords(call, definition) == ("c",)

    def test_var_keyword_accepts_anything(
        self, call_factory, definition_factory, param_factory
    ) -> None:
        definition = definition_factory(
            "lib.g",
            [param_factory("a"), param_factory("options", kind=ParamKind.VAR_KEYWORD)],
        )

        assert verify(call_factory("g", "1", "colour=2"), definition) is None


class TestSpreadArguments:
    def test_spread_skips_count_checks(
        self, call_factory, definition_factory, param_factory
    ) -> None:
        definition = definition_factory("lib.f", [param_factory("a"), param_factory("b")])

        assert verify(call_factory("f", "*args"), definition) is None
        assert verify(call_factory("f", "1", "2", "*more"), definition) is None

    def test_spread_still_checks_keywords(
        self, call_factory, definition_factory, param_factory
    ) -> None:
        definition = definition_factory("lib.f", [param_factory("a")])

        mismatch = verify(call_factory("f", "*args", "z=1"), definition)

        assert mismatch is not None
        assert mismatch.kind == MismatchKind.UNEXPECTED_ARG


class TestReturnMisuse:
    def test_void_result_assigned(self, call_factory, definition_factory, param_factory) -> None:
        definition = definition_factory(
            "shop.audit.record", [param_factory("order")], returns=ReturnUsage.VOID
        )
        call = call_factory("record", "order", usage=ResultUsage.ASSIGNED)

        mismatch = verify(call, definition)

        assert mismatch is not None
        assert mismatch.kind == MismatchKind.RETURN_MISUSE
        assert mismatch.severity == Severity.LOW

    def test_void_result_passed_as_argument(
        self, call_factory, definition_factory
    ) -> None:
        definition = definition_factory("lib.flush", returns=ReturnUsage.VOID)
        call = call_factory("flush", usage=ResultUsage.ARGUMENT)

        mismatch = verify(call, definition)

        assert mismatch is not None
        assert mismatch.kind == MismatchKind.RETURN_MISUSE

    def test_void_result_discarded(self, call_factory, definition_factory) -> None:
        definition = definition_factory("lib.flush", returns=ReturnUsage.VOID)

        assert verify(call_factory("flush", usage=ResultUsage.DISCARDED), definition) is None

    def test_discarded_value_of_expression_bodied_function(
        self, call_factory, definition_factory, param_factory
    ) -> None:
        definition = definition_factory(
            "lib.double", [param_factory("x")], expression_bodied=True
        )
        call = call_factory("double", "x", usage=ResultUsage.DISCARDED)

        mismatch = verify(call, definition)

        assert mismatch is not None
        assert mismatch.kind == MismatchKind.RETURN_MISUSE

    def test_discarded_value_of_function_with_effects(
        self, call_factory, definition_factory, param_factory
    ) -> None:
        definition = definition_factory("lib.save", [param_factory("x")])

        assert verify(call_factory("save", "x", usage=ResultUsage.DISCARDED), definition) is None

    def test_async_call_not_awaited_is_skipped(
        self, call_factory, definition_factory
    ) -> None:
        definition = definition_factory("lib.ping", returns=ReturnUsage.VOID, is_async=True)

        assert verify(call_factory("ping", usage=ResultUsage.ASSIGNED), definition) is None

        awaited = call_factory("ping", usage=ResultUsage.ASSIGNED, awaited=True)
        mismatch = verify(awaited, definition)
        assert mismatch is not None
        assert mismatch.kind == MismatchKind.RETURN_MISUSE

    def test_constructor_is_never_flagged(self, call_factory, definition_factory) -> None:
        definition = definition_factory(
            "lib.Client", kind=DefinitionKind.CONSTRUCTOR, returns=ReturnUsage.VOID
        )
        call = call_factory("Client", usage=ResultUsage.ASSIGNED, is_constructor=True)

        assert verify(call, definition) is None


class TestRulePriority:
    def test_arity_before_everything(
        self, call_factory, definition_factory, param_factory
    ) -> None:
        definition = definition_factory(
            "lib.f", [param_factory("a")], returns=ReturnUsage.VOID
        )
        call = call_factory("f", "1", "2", "c=3", usage=ResultUsage.ASSIGNED)

        mismatch = verify(call, definition)

        assert mismatch is not None
        assert mismatch.kind == MismatchKind.ARITY

    def test_missing_before_unexpected(
        self, call_factory, definition_factory, param_factory
    ) -> None:
        definition = definition_factory("lib.f", [param_factory("a"), param_factory("b")])

        mismatch = verify(call_factory("f", "1", "bb=2"), definition)

        assert mismatch is not None
        assert mismatch.kind == MismatchKind.MISSING_REQUIRED

    def test_unexpected_before_return_misuse(
        self, call_factory, definition_factory, param_factory
    ) -> None:
        definition = definition_factory(
            "lib.f", [param_factory("a")], returns=ReturnUsage.VOID
        )
        call = call_factory("f", "1", "z=2", usage=ResultUsage.ASSIGNED)

        mismatch = verify(call, definition)

        assert mismatch is not None
        assert mismatch.kind == MismatchKind.UNEXPECTED_ARG


class TestVerifyCandidates:
    def test_no_candidates(self, call_factory) -> None:
        assert verify_candidates(call_factory("f"), []) is None

    def test_distinct_targets_are_ambiguous(
        self, call_factory, definition_factory, param_factory
    ) -> None:
        call = call_factory("parse", "t")
        b = definition_factory("b.parsing.parse", [param_factory("text")], path="src/b/parsing.py")
        a = definition_factory("a.parsing.parse", [param_factory("text")], path="src/a/parsing.py")
        candidates = [
            Candidate(call, b, 0.4, ResolutionStage.GLOBAL),
            Candidate(call, a, 0.45, ResolutionStage.GLOBAL),
        ]

        mismatch = verify_candidates(call, candidates)

        assert mismatch is not None
        assert mismatch.kind == MismatchKind.AMBIGUOUS
        assert mismatch.definition is a
        assert mismatch.alternatives == (a, b)
        assert mismatch.confidence == 0.45

    def test_ambiguous_even_when_every_candidate_accepts(
        self, call_factory, definition_factory, param_factory
    ) -> None:
        call = call_factory("parse", "t")
        candidates = [
            Candidate(
                call, definition_factory(name, [param_factory("text")]), 0.4, ResolutionStage.GLOBAL
            )
            for name in ("a.parse", "b.parse")
        ]

        mismatch = verify_candidates(call, candidates)

        assert mismatch is not None
        assert mismatch.kind == MismatchKind.AMBIGUOUS

    def test_overload_set_accepting_call(
        self, call_factory, definition_factory, param_factory
    ) -> None:
        call = call_factory("area", "1", "2")
        one = definition_factory("geo.area", [param_factory("side")], start_line=1)
        two = definition_factory("geo.area", [param_factory("w"), param_factory("h")], start_line=4)
        candidates = [
            Candidate(call, one, 0.9, ResolutionStage.SAME_FILE),
            Candidate(call, two, 0.9, ResolutionStage.SAME_FILE),
        ]

        assert verify_candidates(call, candidates) is None

    def test_overload_set_rejecting_call(
        self, call_factory, definition_factory, param_factory
    ) -> None:
        call = call_factory("area", "1", "2", "3")
        one = definition_factory("geo.area", [param_factory("side")], start_line=1)
        two = definition_factory("geo.area", [param_factory("w"), param_factory("h")], start_line=4)
        candidates = [
            Candidate(call, one, 0.9, ResolutionStage.SAME_FILE),
            Candidate(call, two, 0.9, ResolutionStage.SAME_FILE),
        ]

        mismatch = verify_candidates(call, candidates)

        assert mismatch is not None
        assert mismatch.kind == MismatchKind.ARITY
        assert mismatch.definition is one


@pytest.mark.parametrize(
    ("usage", "flagged"),
    [
        (ResultUsage.ASSIGNED, True),
        (ResultUsage.ARGUMENT, True),
        (ResultUsage.RETURNED, False),
        (ResultUsage.DISCARDED, False),
        (ResultUsage.OTHER, False),
    ],
)
def test_void_result_usage(call_factory, definition_factory, usage, flagged) -> None:
    definition = definition_factory("lib.emit", returns=ReturnUsage.VOID)

    assert (verify(call_factory("emit", usage=usage), definition) is not None) is flagged
