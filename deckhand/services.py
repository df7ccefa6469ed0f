"""
Deckhand default service container.

Scope
- ServiceCollection: the registry. Maps a service key (usually a class) to a
  Descriptor (implementation type, factory or ready instance + Lifetime).
- ServiceProvider: resolves services from a collection, constructing types by
  reading the annotations of their __init__ parameters, and owns singletons.
- ServiceScope: per-request resolution boundary; owns the scoped and transient
  instances it creates and closes them when the scope closes.

Lifetimes
- SINGLETON: one instance per provider, closed by ServiceProvider.close().
- SCOPED: one instance per scope, closed by ServiceScope.close().
- TRANSIENT: a new instance per resolution, closed by the scope that made it.
  Transients resolved from the provider itself belong to the caller; resolve
  disposable transients through a scope.

Disposal
- An instance is disposable when it has a callable close(). Instances handed
  to the collection by the caller (add_singleton(..., instance=...)) are never
  closed by the container.
- Closing is idempotent; when several close() calls fail, the failures are
  raised together as an ExceptionGroup after every instance had its turn.

Contextual services
- add_contextual(service, factory) registers a factory that also receives the
  class being constructed; deckhand.logs uses it to hand each class its own
  logging.Logger.
"""
import inspect
import logging
import threading
import typing
from enum import Enum

from .faults import ServiceResolutionError
from .utils import *

LOG = logging.getLogger(__name__)


class Lifetime(Enum):
    SINGLETON = "singleton"
    SCOPED = "scoped"
    TRANSIENT = "transient"


class Descriptor:
    """
    One registration: how to build `service` and how long the result lives.
    """
    __slots__ = ("service", "implementation", "factory", "instance", "lifetime", "contextual")

    def __init__(self, service, lifetime, *, implementation=Unset, factory=Unset, instance=Unset, contextual=False):
        provided = sum(value is not Unset for value in (implementation, factory, instance))
        if provided > 1:
            raise TypeError("descriptor accepts only one of 'implementation', 'factory' or 'instance'")
        if not provided:
            implementation = service
        if implementation is not Unset and not isinstance(implementation, type):
            raise TypeError(f"descriptor implementation for {_describe(service)} must be a class")
        if factory is not Unset and not callable(factory):
            raise TypeError(f"descriptor factory for {_describe(service)} must be callable")
        if instance is not Unset and lifetime is not Lifetime.SINGLETON:
            raise TypeError("descriptor instances are only valid for singletons")

        self.service = service
        self.lifetime = lifetime
        self.implementation = implementation
        self.factory = factory
        self.instance = instance
        self.contextual = contextual

    def __repr__(self):
        return "descriptor(service=%s, lifetime=%s)" % (_describe(self.service), self.lifetime.value)


def _describe(service):
    return getattr(service, "__qualname__", repr(service))


class ServiceCollection:
    """
    Ordered registry of service descriptors. The last registration of a key wins.
    """

    def __init__(self):
        self._descriptors = {}

    def __contains__(self, service):
        return service in self._descriptors

    def __len__(self):
        return len(self._descriptors)

    def __iter__(self):
        return iter(self._descriptors.values())

    def get(self, service, default=None, /):
        return self._descriptors.get(service, default)

    def add(self, descriptor, /):
        self._descriptors[descriptor.service] = descriptor
        return self

    def try_add(self, descriptor, /):
        """
        Register the descriptor only when its service is absent. Returns True when added.
        """
        if descriptor.service in self._descriptors:
            return False
        self._descriptors[descriptor.service] = descriptor
        return True

    def add_singleton(self, service, implementation=Unset, /, *, factory=Unset, instance=Unset):
        return self.add(Descriptor(service, Lifetime.SINGLETON, implementation=implementation, factory=factory, instance=instance))

    def add_scoped(self, service, implementation=Unset, /, *, factory=Unset):
        return self.add(Descriptor(service, Lifetime.SCOPED, implementation=implementation, factory=factory))

    def add_transient(self, service, implementation=Unset, /, *, factory=Unset):
        return self.add(Descriptor(service, Lifetime.TRANSIENT, implementation=implementation, factory=factory))

    def add_contextual(self, service, factory, /):
        """
        Register factory(scope, owner) where owner is the class whose __init__ asked for service.
        """
        return self.add(Descriptor(service, Lifetime.TRANSIENT, factory=factory, contextual=True))

    def try_add_singleton(self, service, implementation=Unset, /, *, factory=Unset, instance=Unset):
        return self.try_add(Descriptor(service, Lifetime.SINGLETON, implementation=implementation, factory=factory, instance=instance))

    def try_add_scoped(self, service, implementation=Unset, /, *, factory=Unset):
        return self.try_add(Descriptor(service, Lifetime.SCOPED, implementation=implementation, factory=factory))

    def try_add_transient(self, service, implementation=Unset, /, *, factory=Unset):
        return self.try_add(Descriptor(service, Lifetime.TRANSIENT, implementation=implementation, factory=factory))

    def build(self):
        return ServiceProvider(self)


class _Resolver:
    """
    Construction and disposal bookkeeping shared by providers and scopes.
    """

    def __init__(self, services):
        self._services = services
        self._owned = []
        self._cache = {}
        self._closed = False
        self._lock = threading.RLock()

    @property
    def closed(self):
        return self._closed

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def get(self, service, default=None, /):
        """
        Resolve service, or return default when it is not registered.
        """
        if service not in self._services:
            return default
        return self.resolve(service)

    def resolve(self, service, /):
        return self._resolve(service, (), None)

    def _resolve(self, service, chain, owner):
        if self._closed:
            raise ServiceResolutionError(
                f"cannot resolve {_describe(service)} from a closed {type(self).__name__.lower()}",
                service=service,
            )
        if service in chain:
            cycle = " -> ".join(map(_describe, (*chain, service)))
            raise ServiceResolutionError(
                f"circular dependency detected: {cycle}",
                service=service,
                hint="break the cycle by injecting a factory or restructuring the services",
            )
        descriptor = self._services.get(service)
        if descriptor is None:
            raise ServiceResolutionError(
                f"no service registered for {_describe(service)}",
                service=service,
                hint="register it on the service collection before running the app",
            )
        return self._lookup(descriptor, (*chain, service), owner)

    def _lookup(self, descriptor, chain, owner):
        raise NotImplementedError

    def _create(self, descriptor, chain, owner):
        if descriptor.instance is not Unset:
            return descriptor.instance
        if descriptor.factory is not Unset:
            if descriptor.contextual:
                return descriptor.factory(self, owner)
            return descriptor.factory(self)
        return self._construct(descriptor.implementation, chain)

    def _construct(self, implementation, chain):
        try:
            hints = typing.get_type_hints(implementation.__init__)
        except (NameError, TypeError):
            hints = {}
        try:
            parameters = inspect.signature(implementation).parameters.values()
        except (TypeError, ValueError):
            parameters = ()

        args = []
        kwargs = {}
        for parameter in parameters:
            if parameter.kind in (parameter.VAR_POSITIONAL, parameter.VAR_KEYWORD):
                continue
            service = hints.get(parameter.name, Unset)
            if service is Unset or service not in self._services:
                if parameter.default is not parameter.empty:
                    continue
                raise ServiceResolutionError(
                    f"cannot resolve parameter {parameter.name!r} of {_describe(implementation)}",
                    service=implementation,
                    parameter=parameter.name,
                    hint="annotate the parameter with a registered service type or give it a default",
                )
            value = self._resolve(service, chain, implementation)
            if parameter.kind is parameter.POSITIONAL_ONLY:
                args.append(value)
            else:
                kwargs[parameter.name] = value
        return implementation(*args, **kwargs)

    def _track(self, instance):
        if callable(getattr(instance, "close", None)):
            self._owned.append(instance)
        return instance

    def close(self):
        """
        Close every disposable instance created by this resolver, newest first, exactly once.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            owned, self._owned = self._owned, []
            self._cache.clear()

        errors = []
        for instance in reversed(owned):
            try:
                instance.close()
            except Exception as error:
                errors.append(error)
        LOG.debug("closed %s (%d disposable instance(s))", type(self).__name__, len(owned))
        if errors:
            raise ExceptionGroup(f"{type(self).__name__.lower()} close failed", errors)


class ServiceProvider(_Resolver):
    """
    Root resolver; owns singletons. Transients resolved from it are never tracked.
    """

    def create_scope(self):
        if self._closed:
            raise ServiceResolutionError("cannot create a scope from a closed service provider")
        return ServiceScope(self)

    def _lookup(self, descriptor, chain, owner):
        match descriptor.lifetime:
            case Lifetime.SINGLETON | Lifetime.SCOPED:
                return self._singleton(descriptor, chain, owner)
            case Lifetime.TRANSIENT:
                return self._create(descriptor, chain, owner)

    def _singleton(self, descriptor, chain, owner):
        with self._lock:
            try:
                return self._cache[descriptor.service]
            except KeyError:
                pass
            instance = self._create(descriptor, chain, owner)
            self._cache[descriptor.service] = instance
            if descriptor.instance is Unset:
                self._track(instance)
            return instance


class ServiceScope(_Resolver):
    """
    Per-request resolver. Singletons are delegated to the owning provider.
    """

    def __init__(self, provider):
        super().__init__(provider._services)
        self._provider = provider

    @property
    def provider(self):
        return self._provider

    def _lookup(self, descriptor, chain, owner):
        match descriptor.lifetime:
            case Lifetime.SINGLETON:
                return self._provider._singleton(descriptor, chain, owner)
            case Lifetime.SCOPED:
                with self._lock:
                    try:
                        return self._cache[descriptor.service]
                    except KeyError:
                        pass
                    instance = self._cache[descriptor.service] = self._track(self._create(descriptor, chain, owner))
                    return instance
            case Lifetime.TRANSIENT:
                instance = self._create(descriptor, chain, owner)
                return instance if descriptor.contextual else self._track(instance)


__all__ = (
    "Lifetime",
    "Descriptor",
    "ServiceCollection",
    "ServiceProvider",
    "ServiceScope",
)
