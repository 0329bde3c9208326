import logging

logger = logging.getLogger(__name__)
logger.info("Weekend Will App Initialized")
