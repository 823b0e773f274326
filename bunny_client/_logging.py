import logging

logger = logging.getLogger("bunny_client")
logger.addHandler(logging.NullHandler())
