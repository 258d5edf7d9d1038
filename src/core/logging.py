"""Logging setup shared by the API server and the Streamlit UI."""

import logging

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level.upper(), format=_FORMAT)
    else:
        root.setLevel(level.upper())
    # websockets logs every frame at DEBUG
    logging.getLogger("websockets").setLevel(logging.WARNING)
