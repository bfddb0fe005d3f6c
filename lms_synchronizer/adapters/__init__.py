"""
One adapter per supported LMS, all implementing the
:class:`LMSAdapter` contract:

`CanvasAdapter` creates a Canvas course and appends one module per
unit.

`MoodleAdapter` creates a Moodle course and reconciles its sections
with the units (see the `section_sync` module).

Use :func:`build_adapter` to get the adapter for a set of credentials.
"""
from typing import Dict, Type

from .base_adapter import LMSAdapter
from .canvas_adapter import CanvasAdapter
from .moodle_adapter import MoodleAdapter
from .. import exceptions
from ..models import Credentials, LMSType

ADAPTERS: Dict[LMSType, Type[LMSAdapter]] = {
    adapter.lms_type: adapter for adapter in (CanvasAdapter, MoodleAdapter)
}


def build_adapter(credentials: Credentials) -> LMSAdapter:
    """
    Creates the adapter matching `credentials.type`.

    :raises UnsupportedLMSError: when no adapter serves that type
    """
    try:
        adapter_cls = ADAPTERS[credentials.type]
    except KeyError:
        raise exceptions.UnsupportedLMSError(credentials.type)
    return adapter_cls(credentials)
