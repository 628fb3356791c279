import logging
from contextlib import asynccontextmanager

from ats_optimizer.core.config.scoring import get_scoring_config
from ats_optimizer.storage import close_store, init_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    config = get_scoring_config()
    init_store()
    logger.info(
        "startup_complete keywords=%s resume_rules=%s profile_rules=%s",
        len(config.resume.keywords.catalog),
        len(config.suggestions.resume),
        len(config.suggestions.profile),
    )
    yield
    close_store()
