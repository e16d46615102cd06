"""
Shared validation functions for Pydantic schemas.

Length limits come from settings so deployments can tune them without code changes.
"""
import re

from core.config import get_settings

# Avatars are stored as references returned by the media service: http(s) URLs only
AVATAR_URL_PATTERN = re.compile(r"^https?://\S+$")


def normalize_name_part(value: str | None) -> str | None:
    """Trim a first/last name; blank becomes None."""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def validate_bio_length(bio: str | None) -> str | None:
    """Validate that bio doesn't exceed maximum length."""
    settings = get_settings()
    if bio is not None and len(bio) > settings.max_bio_length:
        raise ValueError(
            f"Bio exceeds maximum length of {settings.max_bio_length:,} characters "
            f"(got {len(bio):,} characters).",
        )
    return bio


def validate_avatar(avatar: str | None) -> str | None:
    """Allow empty (clears the avatar) or an http(s) URL."""
    if avatar is None or avatar == "":
        return avatar
    if not AVATAR_URL_PATTERN.match(avatar):
        raise ValueError("Avatar must be an http(s) URL")
    return avatar


def validate_post_title(title: str | None) -> str | None:
    """Validate that a post title doesn't exceed maximum length."""
    settings = get_settings()
    if title is not None and len(title) > settings.max_post_title_length:
        raise ValueError(
            f"Title exceeds maximum length of {settings.max_post_title_length:,} characters.",
        )
    return title


def validate_post_content(content: str | None) -> str | None:
    """Validate that post content is non-blank and within the length limit."""
    if content is None:
        return None
    if not content.strip():
        raise ValueError("Content cannot be empty")
    settings = get_settings()
    if len(content) > settings.max_post_content_length:
        max_len = settings.max_post_content_length
        raise ValueError(
            f"Content exceeds maximum length of {max_len:,} characters "
            f"(got {len(content):,} characters).",
        )
    return content
