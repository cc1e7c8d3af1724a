""" Resilient AMQP client: publish JSON messages to topics on a broker, and
    dispatch inbound messages to handlers keyed by event name, acknowledging
    them only when the handler succeeds.
"""

# Utility components.

from . import json
from . import errors

# Submodules used by multiple other components.

from . import config
from . import message
from . import transport

# Primary public-facing interfaces.

from . import link
from . import publish
from . import consume
from . import events
from . import worker

from .config import LinkConfig
from .link import Link
from .publish import Publisher
from .consume import Consumer
from .events import EventTable
from .worker import Worker

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
