"""
Relay core schema definitions

The ``store`` module contains the value objects of the remote content
store protocol, the ``responses`` module holds the simplified JSON
envelopes returned by the HTTP API and the ``errors`` module contains the
shared error model. This package also contains the ``config`` module, but
it's not exported by default, since it's only used by the settings.
"""

from .errors import *
from .responses import *
from .store import *
