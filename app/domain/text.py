# app/domain/text.py
import re
import unicodedata

from bs4 import BeautifulSoup

# Turkish letters first: str.lower() turns "İ" into "i" + combining dot and
# leaves "ı" alone, so they are mapped explicitly before lowercasing.
_TR_FOLD = str.maketrans({
    "İ": "i", "I": "i", "ı": "i",
    "Ş": "s", "ş": "s",
    "Ğ": "g", "ğ": "g",
    "Ü": "u", "ü": "u",
    "Ö": "o", "ö": "o",
    "Ç": "c", "ç": "c",
})

_WS_RE = re.compile(r"\s+")
_TAG_RE = re.compile(r"<\s*/?\s*[a-zA-Z][^>]*>")


def normalize_turkish(text: str | None) -> str:
    """Lowercase + fold Turkish/other diacritics to ASCII, collapse whitespace."""
    if not text:
        return ""
    s = str(text).translate(_TR_FOLD).lower()
    s = unicodedata.normalize("NFKD", s)
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    return _WS_RE.sub(" ", s).strip()


def html_to_text(text: str | None) -> str:
    """Vendor indications sometimes arrive as HTML fragments; flatten those."""
    if not text:
        return ""
    if not _TAG_RE.search(text):
        return text.strip()
    soup = BeautifulSoup(text, "lxml")
    for br in soup.find_all("br"):
        br.replace_with("\n")
    return soup.get_text(" ", strip=True)
