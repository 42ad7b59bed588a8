"""
Session Effects.

Map session handlers never perform I/O or start timers themselves. They
return a list of effect objects describing what should happen next; the
SessionController dispatches them on the Qt event loop and feeds the results
back into the session. This keeps every transition testable without Qt or a
network.
"""

from dataclasses import dataclass
from typing import List, Tuple, Union

from atlas.core.pins import Pin


@dataclass(frozen=True)
class PersistPins:
    """Replace the stored pin collection with ``pins``."""

    request_id: int
    pins: Tuple[Pin, ...]


@dataclass(frozen=True)
class FetchAdminStatus:
    """Ask the server whether the session cookie grants admin rights."""


@dataclass(frozen=True)
class SubmitLogin:
    password: str


@dataclass(frozen=True)
class SubmitLogout:
    pass


@dataclass(frozen=True)
class StartTimer:
    """
    Start (or restart) the single-shot timer ``key``.

    When it fires the controller calls ``session.on_timer(key, token)``.
    """

    key: str
    delay_ms: int
    token: int = 0


@dataclass(frozen=True)
class StopTimer:
    key: str


@dataclass(frozen=True)
class OpenLink:
    """Navigate to a site path such as ``/lore/places/harbor``."""

    href: str


Effect = Union[
    PersistPins,
    FetchAdminStatus,
    SubmitLogin,
    SubmitLogout,
    StartTimer,
    StopTimer,
    OpenLink,
]

Effects = List[Effect]
