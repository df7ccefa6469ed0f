"""
Deckhand registrar: the container boundary of a CommandApp.

The app never talks to a concrete container. It registers command types while
the tree is configured, and at run time opens one scope per invocation and
resolves the matched command type from it:

    registrar.register_if_absent(VersionCommand)   # configuration
    with registrar.create_scope() as scope:        # run
        command = scope.resolve(VersionCommand)

ServiceRegistrar adapts deckhand.services to that contract; any other
container can be plugged in by implementing Registrar and Scope.
"""
import threading
from abc import ABC, abstractmethod

from .faults import ServiceResolutionError
from .services import Lifetime, ServiceCollection
from .utils import *


class Scope(ABC):
    """
    One resolution boundary. Owns whatever it created and releases it on close().
    """

    @abstractmethod
    def resolve(self, service, /):
        """
        Return an instance of service, raising ServiceResolutionError when impossible.
        """

    @abstractmethod
    def close(self):
        """
        Release the instances created by this scope. Idempotent.
        """

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


class Registrar(ABC):
    """
    Registration and resolution capability required by CommandApp.
    """

    @abstractmethod
    def register_if_absent(self, service, /):
        """
        Register service (as its own transient implementation) unless already registered.
        """

    @abstractmethod
    def register(self, service, implementation=Unset, /, *, lifetime=Lifetime.TRANSIENT):
        """
        Register (or replace) a mapping from service to implementation.
        """

    @abstractmethod
    def register_instance(self, service, instance, /):
        """
        Register a ready instance. The registrar never closes it.
        """

    @abstractmethod
    def resolve(self, service, /):
        """
        Resolve service outside of any scope.
        """

    @abstractmethod
    def create_scope(self):
        """
        Return a new Scope.
        """

    @abstractmethod
    def close(self):
        """
        Release singletons. Idempotent.
        """

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


class _ServiceScope(Scope):
    def __init__(self, scope):
        self._scope = scope

    def resolve(self, service, /):
        return self._scope.resolve(service)

    def close(self):
        self._scope.close()


class ServiceRegistrar(Registrar):
    """
    Registrar backed by a deckhand.services.ServiceCollection.

    Registrations are accepted until the first resolution; the provider is
    built lazily from the collection at that point (once, even under
    concurrent first resolutions), so configure() calls that register new
    command types stay cheap. Once closed, the registrar resolves nothing.
    """

    def __init__(self, services=Unset, /):
        self._services = coalesce(services, ServiceCollection())
        self._provider = None
        self._closed = False
        self._lock = threading.Lock()

    @property
    def services(self):
        return self._services

    @property
    def closed(self):
        return self._closed

    @property
    def provider(self):
        if self._provider is None or self._closed:
            with self._lock:
                if self._closed:
                    raise ServiceResolutionError(
                        "cannot resolve services from a closed registrar",
                        hint="create a new app instead of reusing a closed one",
                    )
                if self._provider is None:
                    self._provider = self._services.build()
        return self._provider

    def register_if_absent(self, service, /):
        self._services.try_add_transient(service)

    def register(self, service, implementation=Unset, /, *, lifetime=Lifetime.TRANSIENT):
        match lifetime:
            case Lifetime.SINGLETON:
                self._services.add_singleton(service, implementation)
            case Lifetime.SCOPED:
                self._services.add_scoped(service, implementation)
            case Lifetime.TRANSIENT:
                self._services.add_transient(service, implementation)
            case _:
                raise TypeError(f"register() 'lifetime' must be a Lifetime, not {lifetime!r}")

    def register_instance(self, service, instance, /):
        self._services.add_singleton(service, instance=instance)

    def resolve(self, service, /):
        return self.provider.resolve(service)

    def create_scope(self):
        return _ServiceScope(self.provider.create_scope())

    def close(self):
        with self._lock:
            if self._closed:
                return
            self._closed = True
            provider = self._provider
        # Nothing was ever resolved: there is nothing to release.
        if provider is not None:
            provider.close()


__all__ = (
    "Registrar",
    "Scope",
    "ServiceRegistrar",
)
