import hashlib
import json
import logging
import math
import re
import unicodedata
from datetime import datetime
from typing import List, Optional

from sqlalchemy import String, cast, or_
from sqlalchemy.orm import Query, Session

from newshub.core.exceptions import Conflict, ValidationError
from newshub.core.timezone_utils import to_naive_utc, utcnow
from newshub.models.article import Article, ArticleStatus
from newshub.models.category import Category
from newshub.models.source import Source, SourceType

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200
MANUAL_TAG = "manual"

# accepted language inputs for manual articles, mapped to ISO codes
SUPPORTED_LANGUAGES = {
    "en": "en", "english": "en",
    "hi": "hi", "hindi": "hi",
    "te": "te", "telugu": "te",
    "ta": "ta", "tamil": "ta",
    "ml": "ml", "malayalam": "ml",
    "kn": "kn", "kannada": "kn",
    "gu": "gu", "gujarati": "gu",
    "bn": "bn", "bengali": "bn",
    "mr": "mr", "marathi": "mr",
    "pa": "pa", "punjabi": "pa",
}

# display and native names per ISO code
LANGUAGE_NAMES = {
    "en": ("English", "English"),
    "hi": ("Hindi", "हिन्दी"),
    "te": ("Telugu", "తెలుగు"),
    "ta": ("Tamil", "தமிழ்"),
    "kn": ("Kannada", "ಕನ್ನಡ"),
    "ml": ("Malayalam", "മലയാളം"),
    "gu": ("Gujarati", "ગુજરાતી"),
    "bn": ("Bengali", "বাংলা"),
    "mr": ("Marathi", "मराठी"),
    "pa": ("Punjabi", "ਪੰਜਾਬੀ"),
}


def slugify(text: str) -> str:
    normalized = unicodedata.normalize("NFKD", text or "").encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug or "article"


def unique_slug(db: Session, title: str) -> str:
    base = slugify(title)[:200]
    slug = base
    n = 2
    while db.query(Article.id).filter(Article.slug == slug).first() is not None:
        slug = f"{base}-{n}"
        n += 1
    return slug


def count_words(content: str) -> int:
    return len([w for w in re.split(r"\s+", content or "") if w])


def reading_time(word_count: int) -> int:
    return math.ceil(word_count / WORDS_PER_MINUTE)


def article_hash(title: str, source_name: str, published_at: datetime) -> str:
    raw = f"{title}-{source_name}-{published_at.isoformat()}"
    return hashlib.md5(raw.encode("utf-8")).hexdigest()


def normalize_language(language: str) -> str:
    code = SUPPORTED_LANGUAGES.get(str(language).strip().lower())
    if code is None:
        supported = ", ".join(sorted(SUPPORTED_LANGUAGES))
        raise ValidationError(f"Unsupported language. Supported languages: {supported}")
    return code


def escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def search_filter(term: str):
    """Case-insensitive substring match on title, summary and content.

    ``%`` and ``_`` in the term are matched literally.
    """
    pattern = f"%{escape_like(term)}%"
    return or_(
        Article.title.ilike(pattern, escape="\\"),
        Article.summary.ilike(pattern, escape="\\"),
        Article.content.ilike(pattern, escape="\\"),
    )


def json_list_contains(column, value: str):
    # match the JSON-encoded element; some backends render non-ASCII
    # text escaped and others verbatim
    needles = {json.dumps(value), json.dumps(value, ensure_ascii=False)}
    text = cast(column, String)
    return or_(*[text.like(f"%{escape_like(needle)}%", escape="\\") for needle in sorted(needles)])


def filter_by_category(q: Query, db: Session, key: str, include_tags: bool = False) -> Query:
    """Filter articles by category key.

    Matches the categories list, or the category reference when a Category
    row with that key exists. With ``include_tags`` an article tagged with
    the key matches too.
    """
    key = key.strip().lower()
    conditions = [json_list_contains(Article.categories, key)]
    if include_tags:
        conditions.append(json_list_contains(Article.tags, key))
    cat = db.query(Category).filter(Category.key == key).first()
    if cat is not None:
        conditions.append(Article.category_id == cat.id)
    return q.filter(or_(*conditions))


def create_manual_article(db: Session, payload) -> Article:
    """Create an admin-authored article.

    The source is looked up by name, then by url, and created (type api)
    when neither matches. The same title, source and publish time can only
    be added once.
    """
    language = normalize_language(payload.language)
    category_key = payload.category.strip().lower()
    published_at = to_naive_utc(payload.published_at) or utcnow()
    source_url = payload.source_url or f"manual://{slugify(payload.source_name)}"

    source = db.query(Source).filter(Source.name == payload.source_name).first()
    if source is None:
        source = db.query(Source).filter(Source.url == source_url).first()
        if source is not None:
            logger.info("Manual article source %r matched existing source %r by url", payload.source_name, source.name)
    if source is None:
        source = Source(
            name=payload.source_name,
            url=source_url,
            rss_urls=[],
            language=language,
            categories=[category_key],
            active=True,
            type=SourceType.api,
            last_scraped=utcnow(),
        )
        db.add(source)
        db.flush()
        logger.info("Created source %r for manual article", source.name)

    digest = article_hash(payload.title, payload.source_name, published_at)
    if db.query(Article.id).filter(Article.hash == digest).first() is not None:
        db.rollback()
        raise Conflict("Article with similar content already exists")
    if payload.source_url and db.query(Article.id).filter(Article.canonical_url == payload.source_url).first() is not None:
        db.rollback()
        raise Conflict("Article with this URL already exists")

    category = db.query(Category).filter(Category.key == category_key).first()
    tags: List[str] = list(payload.tags or [])
    if MANUAL_TAG not in tags:
        tags.append(MANUAL_TAG)
    content = payload.content.strip()
    words = count_words(content)
    title = payload.title.strip()
    summary = payload.summary or (content[:200] + "...")
    images = [{"url": payload.thumbnail, "alt": title, "caption": title}] if payload.thumbnail else []

    article = Article(
        title=title,
        slug=unique_slug(db, title),
        summary=summary[:300],
        content=content,
        # manual articles without a source url still need a unique canonical url
        canonical_url=payload.source_url or f"manual-{digest}",
        language=language,
        category_id=category.id if category else None,
        categories=[] if category else [category_key],
        source_id=source.id,
        source_name=source.name,
        source_url=source.url,
        published_at=published_at,
        scraped_at=utcnow(),
        status=ArticleStatus.published,
        thumbnail=payload.thumbnail,
        images=images,
        tags=tags,
        author=payload.author or payload.source_name,
        word_count=words,
        reading_time=reading_time(words),
        view_count=0,
        hash=digest,
        is_manual=True,
    )
    db.add(article)
    db.commit()
    db.refresh(article)
    return article


def apply_update(db: Session, article: Article, changes: dict) -> Article:
    if "status" in changes and changes["status"] is not None:
        try:
            changes["status"] = ArticleStatus(changes["status"])
        except ValueError:
            raise ValidationError(f"Invalid status: {changes['status']}")
    if changes.get("published_at") is not None:
        changes["published_at"] = to_naive_utc(changes["published_at"])
    for field, value in changes.items():
        setattr(article, field, value)
    if "content" in changes and changes["content"] is not None:
        article.word_count = count_words(article.content)
        article.reading_time = reading_time(article.word_count)
    db.add(article)
    db.commit()
    db.refresh(article)
    return article


def category_key_in_use(db: Session, category: Category) -> bool:
    q = db.query(Article.id).filter(
        or_(Article.category_id == category.id, json_list_contains(Article.categories, category.key))
    )
    return q.first() is not None


def increment_views(db: Session, article_id: int) -> Optional[Article]:
    updated = (
        db.query(Article)
        .filter(Article.id == article_id)
        .update({Article.view_count: Article.view_count + 1}, synchronize_session=False)
    )
    db.commit()
    if not updated:
        return None
    return db.query(Article).filter(Article.id == article_id).first()
