"""pipewright: continuous-delivery pipeline assembly."""

__version__ = "0.3.0"
