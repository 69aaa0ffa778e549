# backend/utils/html.py
"""
HTML helpers for the scraping-based image providers.
"""

from typing import Iterable, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup


def soupify(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "lxml")


def absolutize(base: str, href: str) -> str:
    if href.startswith("//"):
        return "https:" + href
    return urljoin(base, href)


def meta_image(soup: BeautifulSoup) -> Optional[str]:
    """og:image / twitter:image, the product shot most shops advertise."""
    for attrs in ({"property": "og:image"}, {"name": "og:image"}, {"name": "twitter:image"}):
        tag = soup.find("meta", attrs=attrs)
        if tag and tag.get("content"):
            return tag["content"].strip()
    return None


def image_sources(soup: BeautifulSoup, selectors: Iterable[str], base_url: str) -> List[str]:
    """Absolute image URLs matched by the CSS selectors, in selector order, deduplicated."""
    found: List[str] = []
    for selector in selectors:
        for img in soup.select(selector):
            # Lazy loaders put a data: URI in src and the real URL elsewhere
            src = next(
                (v for v in (img.get("src"), img.get("data-src"), img.get("data-lazy-src"))
                 if v and not v.startswith("data:")),
                None,
            )
            if not src:
                srcset = img.get("srcset") or img.get("data-srcset")
                if srcset:
                    # Largest candidate is listed last
                    src = srcset.split(",")[-1].strip().split(" ")[0]
            if not src or src.startswith("data:"):
                continue
            url = absolutize(base_url, src.strip())
            if url not in found:
                found.append(url)
    return found


def text_of(html: Optional[str]) -> str:
    """Strip tags from an HTML fragment."""
    if not html:
        return ""
    return soupify(html).get_text(" ", strip=True)
