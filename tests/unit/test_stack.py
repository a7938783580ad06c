"""
Unit tests for the ordered middleware stack.
"""

import pytest

from pipelinecore.errors import ConfigurationError, IndexOutOfRangeError, NotFoundError
from pipelinecore.middleware.base import Middleware, function_middleware
from pipelinecore.middleware.stack import MiddlewareRegistry, MiddlewareStack, ref_name


class Tagging(Middleware):
    """Appends its tag to the X-Trail header on the way out."""

    tag = "?"

    def __init__(self, app, *args, **options):
        super().__init__(app)
        self.args = args
        self.options = options

    def __call__(self, request):
        request.setdefault("trail", []).append(self.tag)
        status, headers, body = self.app(request)
        headers["X-Trail"] = headers.get("X-Trail", "") + self.tag
        return status, headers, body


class Foo(Tagging):
    tag = "foo"


class Bar(Tagging):
    tag = "bar"


class Baz(Tagging):
    tag = "baz"


class Qux(Tagging):
    tag = "qux"


def app(request):
    return 200, {}, ["ok"]


def stack_of(*refs) -> MiddlewareStack:
    stack = MiddlewareStack()
    for ref in refs:
        stack.use(ref)
    return stack


class TestMutation:
    """Tests for use / insert / swap / delete."""

    def test_use_appends_in_order(self):
        stack = stack_of(Foo, Bar)
        assert stack.names() == ["Foo", "Bar"]

    def test_use_keeps_arguments(self):
        stack = MiddlewareStack().use(Foo, 1, 2, key="value")
        entry = stack[0]
        assert entry.args == (1, 2)
        assert entry.options == {"key": "value"}

    def test_insert_after(self):
        stack = stack_of(Foo, Bar)
        stack.insert_after(Bar, Baz)
        assert stack.names() == ["Foo", "Bar", "Baz"]

    def test_insert_before_places_immediately_before_target(self):
        stack = stack_of(Foo, Bar, Baz)
        stack.insert_before(Bar, Qux)
        assert stack.names() == ["Foo", "Qux", "Bar", "Baz"]

    def test_insert_before_first_entry(self):
        stack = stack_of(Foo, Bar)
        stack.insert_before(Foo, Qux)
        assert stack.names() == ["Qux", "Foo", "Bar"]

    def test_insert_targets_first_match_of_duplicates(self):
        stack = stack_of(Foo, Bar, Foo)
        stack.insert_after(Foo, Baz)
        assert stack.names() == ["Foo", "Baz", "Bar", "Foo"]

    def test_insert_at_index(self):
        stack = stack_of(Foo, Bar)
        stack.insert(1, Baz)
        assert stack.names() == ["Foo", "Baz", "Bar"]

    def test_insert_at_length_appends(self):
        stack = stack_of(Foo, Bar)
        stack.insert(2, Baz)
        assert stack.names() == ["Foo", "Bar", "Baz"]

    @pytest.mark.parametrize("index", [-1, 3, 10])
    def test_insert_out_of_range(self, index):
        stack = stack_of(Foo, Bar)
        with pytest.raises(IndexOutOfRangeError):
            stack.insert(index, Baz)
        assert stack.names() == ["Foo", "Bar"]

    def test_out_of_range_is_an_index_error(self):
        with pytest.raises(IndexError):
            MiddlewareStack().insert(1, Foo)

    def test_insert_with_reference_behaves_like_insert_before(self):
        stack = stack_of(Foo, Bar)
        stack.insert(Bar, Baz)
        assert stack.names() == ["Foo", "Baz", "Bar"]

    def test_unshift(self):
        stack = stack_of(Foo, Bar)
        stack.unshift(Baz)
        assert stack.names() == ["Baz", "Foo", "Bar"]

    def test_swap_preserves_position_and_length(self):
        stack = stack_of(Foo, Bar, Baz)
        stack.swap(Bar, Qux, "arg")
        assert stack.names() == ["Foo", "Qux", "Baz"]
        assert len(stack) == 3
        assert stack[1].args == ("arg",)

    def test_delete_removes_first_match_only(self):
        stack = stack_of(Foo, Bar, Foo)
        stack.delete(Foo)
        assert stack.names() == ["Bar", "Foo"]

    @pytest.mark.parametrize("operation", ["insert_before", "insert_after", "swap"])
    def test_missing_target_raises(self, operation):
        stack = stack_of(Foo)
        with pytest.raises(NotFoundError):
            getattr(stack, operation)(Bar, Baz)
        assert stack.names() == ["Foo"]

    def test_delete_missing_target_raises(self):
        with pytest.raises(NotFoundError):
            stack_of(Foo).delete(Bar)

    def test_move_before_and_after(self):
        stack = stack_of(Foo, Bar, Baz)
        stack.move_before(Foo, Baz)
        assert stack.names() == ["Baz", "Foo", "Bar"]
        stack.move_after(Bar, Baz)
        assert stack.names() == ["Foo", "Bar", "Baz"]

    def test_move_to_missing_target_leaves_stack_untouched(self):
        stack = stack_of(Foo, Bar)
        with pytest.raises(NotFoundError):
            stack.move_after(Qux, Foo)
        assert stack.names() == ["Foo", "Bar"]

    def test_mutators_chain(self):
        stack = MiddlewareStack().use(Foo).use(Bar).insert_after(Foo, Baz)
        assert stack.names() == ["Foo", "Baz", "Bar"]


class TestMatching:
    """Tests for target matching by identity and by name."""

    def test_string_target_matches_class(self):
        stack = stack_of(Foo, Bar)
        stack.insert_before("Bar", Baz)
        assert stack.names() == ["Foo", "Baz", "Bar"]

    def test_class_target_matches_string_entry(self):
        stack = stack_of("Foo", Bar)
        stack.swap(Foo, Qux)
        assert stack.names() == ["Qux", "Bar"]

    def test_dotted_string_matches_by_last_component(self):
        assert ref_name("some.module.Foo") == "Foo"
        assert "some.module.Foo" in stack_of(Foo)

    def test_distinct_classes_with_same_name_do_not_match(self):
        Other = type("Foo", (Tagging,), {})
        stack = stack_of(Foo)
        assert Other not in stack


class TestActive:
    """Tests for conditional activation."""

    def test_false_condition_is_filtered(self):
        stack = MiddlewareStack()
        stack.use(Foo, condition=lambda: False)
        stack.use(Bar, condition=lambda: True)
        stack.use(Baz)
        assert [entry.name for entry in stack.active()] == ["Bar", "Baz"]

    def test_condition_evaluated_on_every_call(self):
        flag = {"on": False}
        stack = MiddlewareStack().use(Foo, condition=lambda: flag["on"])

        assert stack.active() == []
        flag["on"] = True
        assert [entry.name for entry in stack.active()] == ["Foo"]

    def test_filtered_entry_keeps_its_place(self):
        stack = MiddlewareStack()
        stack.use(Foo, condition=lambda: False)
        stack.use(Bar)
        assert stack.names() == ["Foo", "Bar"]


class TestResolution:
    """Tests for lazy string reference resolution."""

    def test_forward_reference_resolves_at_read_time(self):
        registry = MiddlewareRegistry()
        stack = MiddlewareStack(registry).use("Later")

        registry.register(Foo, name="Later")

        handler = stack.build(app)
        assert isinstance(handler, Foo)

    def test_unresolvable_reference_fails_on_active(self):
        stack = MiddlewareStack().use("Missing")
        with pytest.raises(ConfigurationError):
            stack.active()

    def test_inactive_unresolvable_reference_is_ignored(self):
        stack = MiddlewareStack().use("Missing", condition=lambda: False)
        assert stack.active() == []

    def test_dotted_path_is_imported(self):
        stack = MiddlewareStack().use("pipelinecore.middleware.failsafe.Failsafe")
        from pipelinecore.middleware.failsafe import Failsafe
        assert isinstance(stack.build(app), Failsafe)

    def test_bad_dotted_path(self):
        stack = MiddlewareStack().use("pipelinecore.nowhere.Nothing")
        with pytest.raises(ConfigurationError):
            stack.active()

    def test_registry_falls_through_to_parent(self):
        parent = MiddlewareRegistry()
        parent.register(Foo)
        child = MiddlewareRegistry(parent)
        child.register(Bar)

        assert child.resolve("Foo") is Foo
        assert child.resolve("Bar") is Bar
        assert "Foo" in child
        assert child.names() == ["Foo", "Bar"]

    def test_register_as_decorator(self):
        registry = MiddlewareRegistry()

        @registry.register(name="Custom")
        class Custom(Tagging):
            pass

        assert registry.resolve("Custom") is Custom


class TestBuild:
    """Tests for building the handler chain."""

    def test_first_entry_is_outermost(self, make_request):
        handler = stack_of(Foo, Bar, Baz).build(app)
        request = make_request()

        status, headers, body = handler(request)

        assert request["trail"] == ["foo", "bar", "baz"]
        assert headers["X-Trail"] == "bazbarfoo"
        assert (status, body) == (200, ["ok"])

    def test_build_passes_constructor_arguments(self):
        handler = MiddlewareStack().use(Foo, 1, key="v").build(app)
        assert handler.args == (1,)
        assert handler.options == {"key": "v"}

    def test_build_skips_inactive_entries(self, make_request):
        stack = MiddlewareStack()
        stack.use(Foo)
        stack.use(Bar, condition=lambda: False)

        request = make_request()
        stack.build(app)(request)

        assert request["trail"] == ["foo"]

    def test_empty_stack_returns_app(self):
        assert MiddlewareStack().build(app) is app

    def test_function_middleware(self, make_request):
        @function_middleware
        def stamp(request, app, value):
            status, headers, body = app(request)
            headers["X-Stamp"] = value
            return status, headers, body

        stack = MiddlewareStack().use(stamp, "v2")
        assert stack.names() == ["stamp"]

        _, headers, _ = stack.build(app)(make_request())
        assert headers["X-Stamp"] == "v2"

    def test_copy_is_independent(self):
        original = stack_of(Foo, Bar)
        duplicate = original.copy()
        duplicate.use(Baz)

        assert original.names() == ["Foo", "Bar"]
        assert duplicate.names() == ["Foo", "Bar", "Baz"]
        assert duplicate.registry is original.registry
