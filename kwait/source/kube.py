"""Snapshot source backed by the Kubernetes API.

Resources are located through API discovery by kind, optionally narrowed by
group, version, apiVersion and plural name. A subscription lists the
matching objects (emitting RESTARTED), then watches from the listing's
resourceVersion (emitting APPLIED and DELETED) until the server closes the
stream.

Errors are classified for the evaluation loop:

- 400/401/403/404/405/422 responses and missing kinds are fatal
- other API errors (410 Gone, 429, 5xx) and transport errors are recoverable
"""

import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, TYPE_CHECKING

import urllib3
from kubernetes import client, config, dynamic, watch
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException

from kwait.errors import FatalSourceError, RecoverableSourceError
from kwait.tree import from_python

from .protocols import Snapshot, SourceEvent, Target

if TYPE_CHECKING:
    from kwait.watch.context import RunContext

logger = logging.getLogger(__name__)

FATAL_STATUSES = frozenset({400, 401, 403, 404, 405, 422})

WATCH_TIMEOUT = 290
"""Server-side watch timeout in seconds when no deadline is closer."""

SERVICE_ACCOUNT_NAMESPACE = Path('/var/run/secrets/kubernetes.io/serviceaccount/namespace')


def classify_api_error(error: ApiException, action: str):
    """Convert an ApiException into a fatal or recoverable source error."""
    status = error.status
    reason = error.reason or 'unknown error'
    message = f"failed to {action}: {status} {reason}"
    if status in FATAL_STATUSES:
        return FatalSourceError(message, status=status)
    return RecoverableSourceError(message, status=status)


def object_key(obj: Dict[str, Any]) -> str:
    """Return 'namespace/name' (or 'name' for cluster scoped objects)."""
    metadata = obj.get('metadata') or {}
    name = metadata.get('name', '')
    namespace = metadata.get('namespace')
    return f"{namespace}/{name}" if namespace else name


def to_snapshot(obj: Dict[str, Any]) -> Snapshot:
    return Snapshot(object_key(obj), from_python(obj))


def load_api_client(context: Optional[str] = None) -> client.ApiClient:
    """Create an API client from in-cluster config, falling back to kubeconfig.

    Args:
        context: Kubeconfig context; when given, in-cluster config is skipped

    Raises:
        FatalSourceError: If no usable configuration is found
    """
    if context is None:
        try:
            config.load_incluster_config()
            return client.ApiClient()
        except ConfigException:
            pass

    try:
        return config.new_client_from_config(context=context)
    except (ConfigException, OSError) as e:
        raise FatalSourceError(f"Failed to load Kubernetes config: {e}")


def default_namespace(context: Optional[str] = None) -> str:
    """Namespace of the active kubeconfig context, else of the service account."""
    try:
        contexts, active = config.list_kube_config_contexts()
        if context is not None:
            active = next((c for c in contexts if c.get('name') == context), None)
        namespace = ((active or {}).get('context') or {}).get('namespace')
        if namespace:
            return namespace
    except (ConfigException, OSError):
        pass

    try:
        return SERVICE_ACCOUNT_NAMESPACE.read_text().strip() or 'default'
    except OSError:
        return 'default'


class KubeSnapshotSource:
    """Snapshot source reading from a Kubernetes API server.

    Example:
        source = KubeSnapshotSource.from_config(context="staging")
        for event in source.subscribe(Target("Deployment", name="web"), ctx):
            ...
    """

    def __init__(
        self,
        dynamic_client: Optional[dynamic.DynamicClient] = None,
        api_client_factory=None,
        namespace: Optional[str] = None,
        must_exist: bool = False,
    ):
        """Create a source.

        Args:
            dynamic_client: Ready client; created lazily when omitted
            api_client_factory: Callable returning an ApiClient, used to
                                build the dynamic client on first use
            namespace: Namespace for targets that do not set one
            must_exist: Fail named targets that are missing at first listing
        """
        self._dynamic = dynamic_client
        self._factory = api_client_factory or load_api_client
        self._namespace = namespace
        self.must_exist = must_exist
        self._lock = threading.Lock()
        self._resources: Dict[Target, Any] = {}

    @classmethod
    def from_config(
        cls,
        context: Optional[str] = None,
        namespace: Optional[str] = None,
        must_exist: bool = False,
    ) -> 'KubeSnapshotSource':
        """Create a source using kubeconfig / in-cluster configuration."""
        return cls(
            api_client_factory=lambda: load_api_client(context),
            namespace=namespace or default_namespace(context),
            must_exist=must_exist,
        )

    def _client(self) -> dynamic.DynamicClient:
        with self._lock:
            if self._dynamic is None:
                try:
                    self._dynamic = dynamic.DynamicClient(self._factory())
                except ApiException as e:
                    raise classify_api_error(e, "discover API resources")
                except (urllib3.exceptions.HTTPError, OSError) as e:
                    raise RecoverableSourceError(f"failed to reach API server: {e}")
            return self._dynamic

    def resolve(self, target: Target):
        """Find the single API resource serving ``target.kind``.

        Raises:
            FatalSourceError: If no resource or several resources match
        """
        if target in self._resources:
            return self._resources[target]

        dyn = self._client()
        criteria = {'kind': target.kind}
        if target.group is not None:
            criteria['group'] = target.group
        if target.version is not None:
            criteria['api_version'] = target.version
        if target.plural is not None:
            criteria['name'] = target.plural

        try:
            found = dyn.resources.search(**criteria)
        except ApiException as e:
            raise classify_api_error(e, f"discover {target.kind}")
        except (urllib3.exceptions.HTTPError, OSError) as e:
            raise RecoverableSourceError(f"failed to discover {target.kind}: {e}")

        found = [r for r in found if '/' not in r.name]
        if target.api_version is not None:
            found = [r for r in found if r.group_version == target.api_version]

        if not found:
            raise FatalSourceError(
                "No API resources matching filtering criteria were found", status=404
            )
        if len(found) > 1:
            preferred = [r for r in found if getattr(r, 'preferred', False)]
            if len(preferred) == 1:
                found = preferred
            else:
                raise FatalSourceError(
                    "Multiple resources matching filtering criteria were found, "
                    "try narrowing your filtering criteria"
                )

        resource = found[0]
        logger.debug("%s resolved to %s (%s)", target, resource.name, resource.group_version)
        self._resources[target] = resource
        return resource

    def namespace_for(self, target: Target, resource) -> Optional[str]:
        if not resource.namespaced:
            return None
        return target.namespace or self._namespace or 'default'

    def subscribe(self, target: Target, context: 'RunContext') -> Iterator[SourceEvent]:
        """List then watch the objects selected by ``target``."""
        resource = self.resolve(target)
        dyn = self._client()
        namespace = self.namespace_for(target, resource)
        selectors = self._selectors(target)

        try:
            listing = dyn.get(resource, namespace=namespace, **selectors).to_dict()
        except ApiException as e:
            raise classify_api_error(e, f"list {target}")
        except (urllib3.exceptions.HTTPError, OSError) as e:
            raise RecoverableSourceError(f"failed to list {target}: {e}")

        items: List[Dict[str, Any]] = listing.get('items') or []
        if self.must_exist and not target.is_selector and not items:
            raise FatalSourceError(f"{target} not found", status=404)

        for item in items:
            # list items omit their type, single objects carry it
            item.setdefault('apiVersion', resource.group_version)
            item.setdefault('kind', resource.kind)
        yield SourceEvent.restarted(to_snapshot(item) for item in items)

        resource_version = (listing.get('metadata') or {}).get('resourceVersion')
        yield from self._watch(dyn, resource, target, namespace, selectors,
                               resource_version, context)

    def _watch(self, dyn, resource, target, namespace, selectors,
               resource_version, context) -> Iterator[SourceEvent]:
        timeout = WATCH_TIMEOUT
        remaining = context.deadline.remaining()
        if remaining is not None:
            timeout = max(1, min(WATCH_TIMEOUT, int(remaining) + 1))

        watcher = watch.Watch()
        try:
            stream = dyn.watch(
                resource,
                namespace=namespace,
                resource_version=resource_version,
                timeout=timeout,
                watcher=watcher,
                **selectors,
            )
            for event in stream:
                event_type = event.get('type')
                obj = event.get('raw_object') or {}
                if event_type in ('ADDED', 'MODIFIED'):
                    yield SourceEvent.applied(to_snapshot(obj))
                elif event_type == 'DELETED':
                    yield SourceEvent.deleted(to_snapshot(obj))
                else:
                    logger.debug("Ignoring %s event for %s", event_type, target)
        except ApiException as e:
            raise classify_api_error(e, f"watch {target}")
        except (urllib3.exceptions.HTTPError, OSError) as e:
            raise RecoverableSourceError(f"watch stream for {target} broke: {e}")
        finally:
            watcher.stop()

    @staticmethod
    def _selectors(target: Target) -> Dict[str, str]:
        if target.is_selector:
            return {'label_selector': target.selector}
        return {'field_selector': f"metadata.name={target.name}"}
