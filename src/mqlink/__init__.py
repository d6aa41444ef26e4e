""" Python client for point-to-point message queues. A :class:`Connector`
    lazily connects to a broker the first time it is asked to send or
    receive, keeps the connection for later calls, and can be closed and
    reused.
"""

# Utility components.

from . import json
from . import errors

# Submodules used by multiple other components.

from . import config
from . import message
from . import transport
from . import naming
home = config.directory

# Primary public-facing interfaces.

from .errors import (
    MessagingError,
    ConfigResolutionError,
    TransportError,
    TransportTimeout,
    TransportConnectionError,
    UsageError,
)
from .config import ConnectionConfig
from .message import Message, TextMessage, MapMessage
from .builder import MapMessageBuilder
from .connector import Connector

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
