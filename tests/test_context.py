import pytest

from bindscope import Container, Context, ContextRequiredError


class Shape: ...


def test_factory_receives_caller_context():
    c = Container()
    ctx = Context.background().with_value("tenant", "acme")
    seen = []

    def make_shape(inner: Context) -> Shape:
        seen.append(inner)
        return Shape()

    c.register_singleton(make_shape)
    c.resolve(ctx, Shape)

    assert seen == [ctx]
    assert seen[0].value("tenant") == "acme"


def test_context_subclass_is_passed_through():
    class RequestContext(Context): ...

    c = Container()
    ctx = RequestContext()
    seen = []

    def make_shape(inner: RequestContext) -> Shape:
        seen.append(inner)
        return Shape()

    c.register_transient(make_shape)
    c.resolve(ctx, Shape)

    assert seen == [ctx]


def test_context_is_not_looked_up_in_bindings():
    c = Container()

    def make_shape(inner: Context) -> Shape:
        return Shape()

    c.register_singleton(make_shape)
    c.validate(Context.background())


def test_resolve_none_context_raises_before_lookup():
    c = Container()

    with pytest.raises(ContextRequiredError):
        c.resolve(None, Shape)


def test_context_values_are_layered():
    base = Context.background()
    child = base.with_value("a", 1)
    grandchild = child.with_value("b", 2).with_value("a", 3)

    assert base.value("a") is None
    assert child.value("a") == 1
    assert child.value("b", "missing") == "missing"
    assert grandchild.value("a") == 3
    assert grandchild.value("b") == 2


def test_context_with_value_keeps_subclass():
    class RequestContext(Context): ...

    assert isinstance(RequestContext().with_value("k", "v"), RequestContext)
