import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import TypeAdapter
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from newshub.core.config import settings
from newshub.core.exceptions import ValidationError
from newshub.models.source import Source, SourceType
from newshub.schemas.source import FeedRegistry

logger = logging.getLogger(__name__)

_registry_adapter = TypeAdapter(FeedRegistry)


def read_registry(path: Optional[str] = None) -> dict:
    """Read and validate the feed registry file.

    Shape: ``{language: {category: [feed, ...]}}``.
    """
    registry_path = Path(path or settings.RSS_FEEDS_FILE)
    if not registry_path.exists():
        raise ValidationError(f"Feed registry not found: {registry_path}")
    try:
        raw = json.loads(registry_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Feed registry is not valid JSON: {exc}")
    return parse_registry(raw)


def parse_registry(raw) -> dict:
    try:
        return _registry_adapter.validate_python(raw)
    except ValueError as exc:
        raise ValidationError(f"Invalid feed registry: {exc}")


def load_feeds(db: Session, registry: dict) -> dict:
    """Create an rss Source for every registry feed not already stored.

    A feed whose url or name matches an existing source is skipped. A failing
    feed is logged and counted, and the rest of the batch still loads.
    """
    loaded = skipped = failed = 0
    for language, categories in registry.items():
        for category, feeds in categories.items():
            for feed in feeds:
                try:
                    existing = (
                        db.query(Source.id)
                        .filter(or_(Source.url == feed.url, Source.name == feed.name))
                        .first()
                    )
                    if existing is not None:
                        skipped += 1
                        continue
                    db.add(Source(
                        name=feed.name,
                        url=feed.url,
                        rss_urls=list(feed.rss_urls),
                        language=feed.language or language,
                        categories=[c.lower() for c in (feed.categories or [category])],
                        active=feed.active,
                        type=SourceType.rss,
                        last_scraped=None,
                    ))
                    db.commit()
                    loaded += 1
                except SQLAlchemyError:
                    db.rollback()
                    failed += 1
                    logger.exception("Error loading feed %s", feed.name)
    logger.info("Feed registry load: loaded=%s skipped=%s failed=%s", loaded, skipped, failed)
    return {"loaded": loaded, "skipped": skipped, "failed": failed, "total": loaded + skipped + failed}
