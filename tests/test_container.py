"""Tests for lightcore.container — transient and singleton bindings."""

import pytest

from lightcore.container import Container, ServiceBinding
from lightcore.errors import BindingNotFound


class Service:
    pass


class TestBind:
    def test_transient_factory_called_every_time(self) -> None:
        container = Container().bind(Service, Service)
        first = container.get(Service)
        second = container.get(Service)
        assert isinstance(first, Service)
        assert first is not second

    def test_plain_value_is_wrapped(self) -> None:
        container = Container().bind("greeting", "hello")
        assert container.get("greeting") == "hello"

    def test_rebind_overwrites(self) -> None:
        container = Container().bind("n", 1)
        container.bind("n", 2)
        assert container.get("n") == 2
        assert len(container) == 1

    def test_chaining(self) -> None:
        container = Container().bind("a", 1).singleton("b", lambda: 2)
        assert container.get("a") == 1
        assert container.get("b") == 2


class TestSingleton:
    def test_same_instance_every_time(self) -> None:
        calls = []

        def factory() -> Service:
            calls.append(1)
            return Service()

        container = Container().singleton(Service, factory)
        assert container.get(Service) is container.get(Service)
        assert len(calls) == 1

    def test_falsy_result_is_cached(self) -> None:
        calls = []

        def factory() -> int:
            calls.append(1)
            return 0

        container = Container().singleton("zero", factory)
        assert container.get("zero") == 0
        assert container.get("zero") == 0
        assert len(calls) == 1

    def test_instance_registers_resolved_object(self) -> None:
        service = Service()
        container = Container().instance(Service, service)
        assert container.get(Service) is service

    def test_rebinding_discards_cached_instance(self) -> None:
        container = Container().singleton(Service, Service)
        first = container.get(Service)
        container.singleton(Service, Service)
        assert container.get(Service) is not first


class TestLookup:
    def test_unknown_id_raises(self) -> None:
        with pytest.raises(BindingNotFound, match="missing"):
            Container().get("missing")

    def test_binding_not_found_is_lookup_error(self) -> None:
        with pytest.raises(LookupError):
            Container().get(Service)

    def test_has_does_not_resolve(self) -> None:
        calls = []
        container = Container().singleton("lazy", lambda: calls.append(1))
        assert container.has("lazy")
        assert "lazy" in container
        assert not container.has("other")
        assert calls == []

    def test_resolved_tracks_built_singletons(self) -> None:
        container = Container().singleton("lazy", Service).bind("fresh", Service)
        assert not container.resolved("lazy")
        container.get("lazy")
        container.get("fresh")
        assert container.resolved("lazy")
        assert not container.resolved("fresh")
        assert not container.resolved("missing")


class TestServiceBinding:
    def test_resolved_flag(self) -> None:
        binding = ServiceBinding(Service, singleton=True)
        assert binding.resolved is False
        binding.resolve()
        assert binding.resolved is True

    def test_transient_never_resolved(self) -> None:
        binding = ServiceBinding(Service)
        binding.resolve()
        assert binding.resolved is False
