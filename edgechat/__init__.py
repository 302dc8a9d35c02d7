"""EdgeChat — small session-backed chat front-end for hosted LLMs."""

__app_name__ = "EdgeChat"
__version__ = "0.1.0"
