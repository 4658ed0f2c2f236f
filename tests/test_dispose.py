import logging
import unittest
from unittest.mock import MagicMock

import pytest

from simpledi import Disposable, ProviderDisposedError, ServiceCollection, ServiceProvider


class Connection:
    def __init__(self):
        self.dispose_calls = 0

    def dispose(self) -> None:
        self.dispose_calls += 1


class Repository:
    def __init__(self, connection: Connection):
        self.connection = connection
        self.dispose_calls = 0

    def dispose(self) -> None:
        self.dispose_calls += 1


class FailingResource:
    def dispose(self) -> None:
        msg = "cannot release"
        raise OSError(msg)


class PlainService: ...


class TestProviderDisposal(unittest.TestCase):
    provider: ServiceProvider

    def setUp(self):
        services = ServiceCollection()
        services.add_singleton(Connection).add_singleton(Repository).add_singleton(PlainService)
        services.add_singleton(FailingResource)
        self.provider = services.build_provider()

    def test_connection_satisfies_disposable_protocol(self):
        assert isinstance(Connection(), Disposable)
        assert not isinstance(PlainService(), Disposable)

    def test_dispose_invokes_disposable_singletons_exactly_once(self):
        repo = self.provider.resolve(Repository)
        self.provider.resolve(PlainService)

        self.provider.dispose()
        self.provider.dispose()

        assert repo.dispose_calls == 1
        assert repo.connection.dispose_calls == 1

    def test_dispose_releases_dependents_before_dependencies(self):
        order = []
        repo = self.provider.resolve(Repository)
        repo.dispose = MagicMock(side_effect=lambda: order.append("repository"))
        repo.connection.dispose = MagicMock(side_effect=lambda: order.append("connection"))

        self.provider.dispose()

        assert order == ["repository", "connection"]

    def test_resolve_after_dispose_raises(self):
        self.provider.resolve(Connection)
        self.provider.dispose()

        assert self.provider.disposed
        with pytest.raises(ProviderDisposedError):
            self.provider.resolve(Connection)
        with pytest.raises(ProviderDisposedError):
            self.provider.resolve(PlainService)

    def test_failing_dispose_does_not_block_others(self):
        connection = self.provider.resolve(Connection)
        self.provider.resolve(FailingResource)
        repo = self.provider.resolve(Repository)

        with self.assertLogs("simpledi._container", level=logging.ERROR) as logs:
            self.provider.dispose()

        assert connection.dispose_calls == 1
        assert repo.dispose_calls == 1
        assert any("FailingResource" in line for line in logs.output)

    def test_unresolved_singletons_are_never_constructed_for_disposal(self):
        self.provider.dispose()
        assert self.provider.disposed

    def test_provider_as_context_manager(self):
        with self.provider as provider:
            connection = provider.resolve(Connection)
        assert connection.dispose_calls == 1
        assert self.provider.disposed


def test_transient_instances_are_not_tracked():
    services = ServiceCollection().add_transient(Connection)
    provider = services.build_provider()
    connection = provider.resolve(Connection)
    provider.dispose()
    assert connection.dispose_calls == 0


def test_scope_dispose_releases_only_scoped_instances():
    services = ServiceCollection().add_singleton(Connection).add_scoped(Repository)
    provider = services.build_provider()

    scope = provider.create_scope()
    repo = scope.resolve(Repository)
    scope.dispose()
    scope.dispose()

    assert repo.dispose_calls == 1
    assert repo.connection.dispose_calls == 0
    assert provider.resolve(Connection) is repo.connection

    provider.dispose()
    assert repo.connection.dispose_calls == 1
    assert repo.dispose_calls == 1


class LateService: ...


class Finalizer:
    def __init__(self):
        self.provider = None
        self.errors = []

    def dispose(self) -> None:
        try:
            self.provider.resolve(LateService)
        except ProviderDisposedError as exc:
            self.errors.append(exc)


def test_resolving_from_dispose_hook_raises_provider_disposed():
    services = ServiceCollection().add_singleton(Finalizer).add_singleton(LateService)
    provider = services.build_provider()
    finalizer = provider.resolve(Finalizer)
    finalizer.provider = provider

    provider.dispose()

    assert len(finalizer.errors) == 1
    assert provider._singletons == {}  # noqa: SLF001


def test_resolving_from_scoped_dispose_hook_raises_provider_disposed():
    services = ServiceCollection().add_scoped(Finalizer).add_scoped(LateService)
    scope = services.build_provider().create_scope()
    finalizer = scope.resolve(Finalizer)
    finalizer.provider = scope

    scope.dispose()

    assert len(finalizer.errors) == 1
