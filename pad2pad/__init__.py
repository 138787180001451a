"""
pad2pad: gamepad state relay over UDP
Streams controller state from remote senders to local virtual gamepads
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pad2pad")
except PackageNotFoundError:
    # Running from a source tree that was never installed
    __version__ = "1.0.0.dev"

__author__ = "pad2pad contributors"
