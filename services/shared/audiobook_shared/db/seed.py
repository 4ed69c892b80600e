"""Reference data loaded at startup."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..logging import get_logger
from .models import Language

logger = get_logger(__name__)

# (code, name) pairs accepted by the synthesis service
SUPPORTED_LANGUAGES: tuple[tuple[str, str], ...] = (
    ("en", "English"),
    ("es", "Spanish"),
    ("fr", "French"),
    ("de", "German"),
    ("it", "Italian"),
    ("pt", "Portuguese"),
    ("pl", "Polish"),
    ("tr", "Turkish"),
    ("ru", "Russian"),
    ("nl", "Dutch"),
    ("cs", "Czech"),
    ("ar", "Arabic"),
    ("zh-cn", "Chinese"),
    ("ja", "Japanese"),
    ("hu", "Hungarian"),
    ("ko", "Korean"),
    ("hi", "Hindi"),
)


async def seed_languages(session: AsyncSession) -> int:
    """Insert any supported language that is not in the table yet.

    Safe to run on every startup.

    Returns:
        Number of languages inserted.
    """
    result = await session.execute(select(Language.code))
    existing = {code.lower() for code in result.scalars()}

    missing = [
        Language(code=code, name=name)
        for code, name in SUPPORTED_LANGUAGES
        if code not in existing
    ]
    if missing:
        session.add_all(missing)
        await session.commit()
        logger.info("Seeded languages", count=len(missing))

    return len(missing)
