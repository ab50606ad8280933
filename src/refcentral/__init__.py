"""refcentral: an in-process ref registry with retrieval-before-availability."""

from importlib.metadata import version as _version

__version__ = _version("refcentral")

from refcentral._anchor import ABSENT, ANY
from refcentral.registry import RefRegistry
from refcentral.channel import RefChannel
from refcentral.observer import RefObserver
from refcentral.proxy import RefProxy, create_proxy
from refcentral.futures import when_ref, when_next_ref, when_ref_unset
from refcentral.ttl import ExpiryScheduler
# textual bridge NOT auto-imported — opt-in only

__all__ = [
    "ABSENT",
    "ANY",
    "RefRegistry",
    "RefChannel",
    "RefObserver",
    "RefProxy",
    "create_proxy",
    "when_ref",
    "when_next_ref",
    "when_ref_unset",
    "ExpiryScheduler",
]
