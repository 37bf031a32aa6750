"""A small runtime for terminal applications.

Input is decoded into events, applications draw into frames, and only the
cells that changed since the last frame are written back to the terminal.
"""

import logging

from .core import *
from .color import *
from .event import *
from .style import *
from .screen import *
from .frame import *
from .decoder import *
from .terminal import *
from .app import *
from .log import *
from .__about__ import __version__

logging.getLogger(__name__).addHandler(logging.NullHandler())
