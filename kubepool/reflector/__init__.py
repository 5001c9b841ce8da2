from kubepool.reflector.events import (
    EventType as EventType,
    ResourceList as ResourceList,
    WatchEvent as WatchEvent,
)
from kubepool.reflector.handlers import (
    ResourceEventHandlerFuncs as ResourceEventHandlerFuncs,
)
from kubepool.reflector.reflector import Reflector as Reflector
from kubepool.reflector.store import (
    StoreDelta as StoreDelta,
    ThreadSafeStore as ThreadSafeStore,
    meta_namespace_key as meta_namespace_key,
    resource_version_of as resource_version_of,
)
from kubepool.reflector.watch_source import WatchSource as WatchSource
