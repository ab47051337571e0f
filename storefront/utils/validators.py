import asyncio
import re
from datetime import date
from typing import Iterable, Optional
from urllib.parse import urlparse

YOUTUBE_EMBED_PATTERN = re.compile(r'^https://www\.youtube\.com/embed/[a-zA-Z0-9_-]{11}(?:\?.*)?$')
IMAGE_EXTENSION_PATTERN = re.compile(r'\.(jpg|jpeg|png|gif)$', re.IGNORECASE)
UNSPLASH_PREFIX = "https://images.unsplash.com/"


def validate_email(email: str) -> bool:
    """Only the presence of an @ is required"""
    return bool(email) and "@" in email


def validate_password(password: str, min_length: int = 6) -> bool:
    return password is not None and len(password) >= min_length


def validate_video_url(url: str) -> bool:
    """Accepts YouTube embed links only"""
    return bool(url) and bool(YOUTUBE_EMBED_PATTERN.match(url))


def validate_image_url(url: str) -> bool:
    return bool(url) and (bool(IMAGE_EXTENSION_PATTERN.search(url)) or url.startswith(UNSPLASH_PREFIX))


def validate_attachment_url(url: str, trusted_domains: Iterable[str]) -> bool:
    """The host must be a trusted domain or one of its subdomains"""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False
    host = parsed.hostname.lower()
    return any(host == d or host.endswith("." + d) for d in trusted_domains)


async def verify_video_url(url: str, delay: float = 0.0) -> bool:
    """Simulated remote check of a lesson video; only the format is inspected."""
    if delay > 0:
        await asyncio.sleep(delay)
    return validate_video_url(url)


def validate_card_number(card_number: str) -> bool:
    digits = re.sub(r'\s', '', card_number or '')
    return bool(re.fullmatch(r'\d{16}', digits))


def validate_cvv(cvv: str) -> bool:
    return bool(re.fullmatch(r'\d{3}', cvv or ''))


def expiry_date_error(expiry: str, today: Optional[date] = None) -> Optional[str]:
    """Returns an error message for an MM/YY expiry date, or None if it is usable"""
    if not re.fullmatch(r'\d{2}/\d{2}', expiry or ''):
        return "Please enter a valid expiration date. (MM/YY)"

    month, year = (int(part) for part in expiry.split('/'))
    today = today or date.today()
    current_year = today.year % 100

    if month < 1 or month > 12:
        return "Invalid month"
    if year < current_year or (year == current_year and month < today.month):
        return "Expired card"
    return None
