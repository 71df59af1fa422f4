import logging

LOGGER = logging.getLogger("rubik_cube")
