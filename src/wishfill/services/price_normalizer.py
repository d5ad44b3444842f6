"""
Price candidate collection, conflict resolution and canonical formatting.

Canonical prices look like ``"19,99€"``: comma decimal separator, exactly
two decimals, no thousands separator, currency symbol appended. All public
functions return strings or ``None``/``[]`` and never raise on bad input.
"""
from __future__ import annotations

import re
from collections import Counter
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, List, Optional, Sequence, Set

from bs4 import BeautifulSoup, Comment

from ..extractors.patterns import (
    OFFSCREEN_PRICE_SELECTORS,
    PRICE_PATTERNS,
    PRICE_SELECTORS,
    FieldPattern,
)
from ..logger import get_logger
from ..models import CandidatePrice, PriceSource, Visibility

logger = get_logger(__name__)


CURRENCY_SYMBOLS = {
    "EUR": "€",
    "USD": "$",
    "GBP": "£",
}

# Fixed approximate conversion rates into EUR. These are not live FX rates;
# they only make a foreign-only price usable as a wishlist hint.
APPROX_EUR_RATES = {
    "EUR": Decimal("1"),
    "USD": Decimal("0.92"),
    "GBP": Decimal("1.17"),
}

# Observed VAT-inclusion margins between a VAT-exclusive structured price
# and the displayed price. Heuristic, tuned on real storefronts; the final
# catch-all makes any margin above 15% count.
VAT_BANDS = [
    (Decimal("0.16"), Decimal("0.19")),
    (Decimal("0.20"), Decimal("0.22")),
    (Decimal("0.30"), Decimal("0.33")),
]
VAT_BAND_TOLERANCE = Decimal("0.005")
VAT_CATCH_ALL_MARGIN = Decimal("0.15")

CANONICAL_PRICE = re.compile(r'^\d+,\d{2}€$')

_NUMBER = re.compile(r'\d[\d.,\u00a0\u202f]*')
_TWO_PLACES = Decimal("0.01")

EMBEDDED_PRICE_PATTERNS = [
    re.compile(r'"(?:priceAmount|currentPrice|salePrice|finalPrice)"\s*:\s*"?(\d+(?:[.,]\d+)?)"?', re.I),
    re.compile(r'"price"\s*:\s*\{\s*"(?:value|amount)"\s*:\s*"?(\d+(?:[.,]\d+)?)"?', re.I),
]


# =============================================================================
# Parsing and formatting
# =============================================================================

def parse_amount(text) -> Optional[Decimal]:
    """
    Parse a price amount written in either European or US notation.

    Examples:
        >>> parse_amount("1.234,56 €")
        Decimal('1234.56')
        >>> parse_amount("$1,234.56")
        Decimal('1234.56')
        >>> parse_amount("1.299")
        Decimal('1299')
        >>> parse_amount("gratis") is None
        True
    """
    if text is None:
        return None
    if isinstance(text, (int, float, Decimal)) and not isinstance(text, bool):
        try:
            return Decimal(str(text))
        except InvalidOperation:
            return None

    match = _NUMBER.search(str(text))
    if not match:
        return None

    number = re.sub(r'[\u00a0\u202f]', '', match.group(0)).rstrip('.,')
    if not number:
        return None

    last_dot = number.rfind('.')
    last_comma = number.rfind(',')

    if last_dot >= 0 and last_comma >= 0:
        decimal_sep = '.' if last_dot > last_comma else ','
        thousands_sep = ',' if decimal_sep == '.' else '.'
        number = number.replace(thousands_sep, '').replace(decimal_sep, '.')
    elif last_dot >= 0 or last_comma >= 0:
        # A lone separator followed by exactly three digits groups thousands
        sep = '.' if last_dot >= 0 else ','
        head, _, tail = number.rpartition(sep)
        if len(tail) == 3:
            number = number.replace(sep, '')
        else:
            number = head.replace(sep, '') + '.' + tail

    try:
        return Decimal(number)
    except InvalidOperation:
        return None


def detect_currency(
    text: Optional[str],
    hint: Optional[str] = None,
    default: str = "EUR",
) -> str:
    """
    Work out the ISO currency of a price string.

    An explicit ``hint`` (e.g. JSON-LD ``priceCurrency``) wins, then any
    symbol or code in the text, then ``default``.
    """
    if hint:
        code = hint.strip().upper()
        if code in CURRENCY_SYMBOLS:
            return code
        for iso, symbol in CURRENCY_SYMBOLS.items():
            if code == symbol:
                return iso

    value = text or ""
    if "€" in value or re.search(r'\bEUR\b', value, re.I):
        return "EUR"
    if "£" in value or re.search(r'\bGBP\b', value, re.I):
        return "GBP"
    if "$" in value or re.search(r'\bUSD\b', value, re.I):
        return "USD"
    return default


def format_price(amount: Decimal, currency: str = "EUR") -> str:
    """
    Format an amount as a canonical price string.

    Examples:
        >>> format_price(Decimal("19.99"))
        '19,99€'
        >>> format_price(Decimal("1499"))
        '1499,00€'
    """
    quantized = amount.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
    symbol = CURRENCY_SYMBOLS.get(currency, CURRENCY_SYMBOLS["EUR"])
    return f"{quantized:.2f}".replace(".", ",") + symbol


def to_eur(amount: Decimal, currency: str) -> Decimal:
    rate = APPROX_EUR_RATES.get(currency)
    if rate is None:
        return amount
    return amount * rate


def normalize_price(raw, currency_hint: Optional[str] = None) -> str:
    """
    Normalize one raw price into the canonical string.

    Non-EUR prices are converted with the fixed approximate rates. Returns
    ``""`` for anything that does not contain a positive amount.

    Examples:
        >>> normalize_price("29.99", "EUR")
        '29,99€'
        >>> normalize_price("19,99€")
        '19,99€'
        >>> normalize_price("")
        ''
    """
    try:
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return ""
        if isinstance(raw, str) and CANONICAL_PRICE.match(raw.strip()):
            return raw.strip()

        amount = parse_amount(raw)
        if amount is None or amount <= 0:
            return ""

        currency = detect_currency(raw if isinstance(raw, str) else "", currency_hint)
        return format_price(to_eur(amount, currency), "EUR")
    except Exception as e:
        logger.debug("PRICE normalize failed for %r: %s", raw, e)
        return ""


def make_candidate(
    raw_text,
    *,
    source: PriceSource,
    visibility: Visibility = Visibility.VISIBLE,
    currency_hint: Optional[str] = None,
    default_currency: str = "EUR",
) -> Optional[CandidatePrice]:
    """Build a candidate from raw text, or ``None`` if it holds no positive amount."""
    amount = parse_amount(raw_text)
    if amount is None or amount <= 0:
        return None
    text = str(raw_text).strip()
    return CandidatePrice(
        raw_text=text,
        amount=amount,
        currency=detect_currency(text, currency_hint, default_currency),
        visibility=visibility,
        source=source,
    )


# =============================================================================
# Candidate collection
# =============================================================================

def _jsonld_candidates(soup: BeautifulSoup, default_currency: str = "EUR") -> List[CandidatePrice]:
    # Imported lazily: structured imports this module for price helpers
    from ..extractors.structured import find_jsonld_product

    product = find_jsonld_product(soup)
    if product is None:
        return []
    price, currency = product.first_price()
    candidate = make_candidate(
        price,
        source=PriceSource.JSONLD,
        visibility=Visibility.OFFSCREEN,
        currency_hint=currency,
        default_currency=default_currency,
    )
    return [candidate] if candidate else []


def _embedded_json_candidates(html: str, default_currency: str = "EUR") -> List[CandidatePrice]:
    for pattern in EMBEDDED_PRICE_PATTERNS:
        match = pattern.search(html or "")
        if match:
            candidate = make_candidate(
                match.group(1),
                source=PriceSource.EMBEDDED_JSON,
                visibility=Visibility.OFFSCREEN,
                default_currency=default_currency,
            )
            if candidate:
                return [candidate]
    return []


def _meta_candidates(soup: BeautifulSoup, default_currency: str = "EUR") -> List[CandidatePrice]:
    currency_tag = (
        soup.find("meta", attrs={"property": "product:price:currency"})
        or soup.find("meta", attrs={"property": "og:price:currency"})
        or soup.find("meta", attrs={"itemprop": "priceCurrency"})
    )
    currency = currency_tag.get("content") if currency_tag else None

    candidates = []
    for attrs in (
        {"property": "product:price:amount"},
        {"property": "og:price:amount"},
        {"itemprop": "price"},
    ):
        for tag in soup.find_all("meta", attrs=attrs):
            candidate = make_candidate(
                tag.get("content"),
                source=PriceSource.META,
                visibility=Visibility.OFFSCREEN,
                currency_hint=currency,
                default_currency=default_currency,
            )
            if candidate:
                candidates.append(candidate)
    return candidates


def scan_price_text(text: str) -> List[str]:
    """Return the price-looking substrings of ``text`` (amount + currency marker)."""
    found = []
    for pattern in PRICE_PATTERNS:
        for match in pattern.finditer(text or ""):
            found.append(match.group(0).strip())
    return found


def _visible_text(element, hidden: Set[int]) -> str:
    """Element text without comments or the text of screen-reader-only descendants."""
    parts = []
    for string in element.find_all(string=True):
        if isinstance(string, Comment):
            continue
        if hidden and any(id(parent) in hidden for parent in string.parents):
            continue
        parts.append(str(string))
    return " ".join("".join(parts).split())


def _element_candidates(
    soup: BeautifulSoup,
    selectors: Sequence[str],
    *,
    source: PriceSource,
    visibility: Visibility,
    hidden: Optional[Set[int]] = None,
    default_currency: str = "EUR",
) -> List[CandidatePrice]:
    candidates = []
    hidden = hidden or set()
    seen = set(hidden)
    for selector in selectors:
        try:
            elements = soup.select(selector)
        except Exception as e:
            logger.debug("PRICE bad selector %s: %s", selector, e)
            continue
        for element in elements:
            if id(element) in seen or element.name == "meta":
                continue
            seen.add(id(element))

            raw_values = []
            for attr in ("content", "data-price", "data-product-price"):
                if element.get(attr):
                    raw_values.append(element.get(attr))
            text = _visible_text(element, hidden)
            matches = scan_price_text(text)
            raw_values.extend(matches[:1] if matches else ([text] if text and len(text) <= 20 else []))

            for raw in raw_values:
                candidate = make_candidate(
                    raw, source=source, visibility=visibility, default_currency=default_currency,
                )
                if candidate:
                    candidates.append(candidate)
                    break
    return candidates


def _selected_ids(soup: BeautifulSoup, selectors: Sequence[str]) -> Set[int]:
    found = set()
    for selector in selectors:
        try:
            for element in soup.select(selector):
                found.add(id(element))
        except Exception as e:
            logger.debug("PRICE bad selector %s: %s", selector, e)
    return found


def collect_candidates(
    soup: BeautifulSoup,
    html: str,
    extra_patterns: Iterable[FieldPattern] = (),
    offscreen_selectors: Sequence[str] = OFFSCREEN_PRICE_SELECTORS,
    visible_selectors: Sequence[str] = PRICE_SELECTORS,
    default_currency: str = "EUR",
) -> List[CandidatePrice]:
    """
    Collect every price candidate a page offers.

    Args:
        soup: Parsed page
        html: Raw page HTML (for regex-based sources)
        extra_patterns: Site-specific field patterns, treated as visible
            pattern candidates
        offscreen_selectors: Screen-reader-only price containers
        visible_selectors: Displayed price containers
        default_currency: Currency assumed for amounts without a marker

    Returns:
        Candidates in collection order (structured first)
    """
    candidates: List[CandidatePrice] = []
    candidates.extend(_jsonld_candidates(soup, default_currency))
    candidates.extend(_embedded_json_candidates(html, default_currency))
    candidates.extend(_meta_candidates(soup, default_currency))

    candidates.extend(_element_candidates(
        soup, offscreen_selectors,
        source=PriceSource.OFFSCREEN, visibility=Visibility.OFFSCREEN,
        default_currency=default_currency,
    ))
    candidates.extend(_element_candidates(
        soup, visible_selectors,
        source=PriceSource.DOM, visibility=Visibility.VISIBLE,
        hidden=_selected_ids(soup, offscreen_selectors),
        default_currency=default_currency,
    ))

    for pattern in extra_patterns:
        for raw in pattern.find_all(html, soup):
            candidate = make_candidate(
                raw, source=PriceSource.PATTERN, visibility=Visibility.VISIBLE,
                default_currency=default_currency,
            )
            if candidate:
                candidates.append(candidate)
                break

    logger.debug("PRICE collected %d candidate(s)", len(candidates))
    return candidates


# =============================================================================
# Resolution
# =============================================================================

def matches_vat_band(margin: Decimal) -> bool:
    """Whether ``margin`` (visible/structured - 1) looks like added VAT."""
    for low, high in VAT_BANDS:
        if low - VAT_BAND_TOLERANCE <= margin <= high + VAT_BAND_TOLERANCE:
            return True
    return margin > VAT_CATCH_ALL_MARGIN


def _in_eur(candidates: Sequence[CandidatePrice]) -> List[CandidatePrice]:
    eur = [c for c in candidates if c.currency == "EUR"]
    if eur:
        return eur

    converted = []
    for c in candidates:
        converted.append(CandidatePrice(
            raw_text=c.raw_text,
            amount=to_eur(c.amount, c.currency),
            currency="EUR",
            visibility=c.visibility,
            source=c.source,
        ))
    if converted:
        logger.debug("PRICE converted %d non-EUR candidate(s) at approximate rates", len(converted))
    return converted


def _count_verbatim(candidate: CandidatePrice, page_text: str) -> int:
    if not page_text:
        return 0
    needles = {candidate.raw_text, format_price(candidate.amount).rstrip("€")}
    return max(page_text.count(n) for n in needles if n)


def _pick_offscreen(offscreen: List[CandidatePrice], page_text: str) -> CandidatePrice:
    frequency = Counter(c.amount for c in offscreen)
    top = max(frequency.values())
    tied = []
    for c in offscreen:
        if frequency[c.amount] == top and all(t.amount != c.amount for t in tied):
            tied.append(c)
    if len(tied) == 1:
        return tied[0]

    # max() keeps the first of equal scores, so document order breaks ties
    return max(tied, key=lambda c: _count_verbatim(c, page_text))


def resolve_price(candidates: Sequence[CandidatePrice], page_text: str = "") -> str:
    """
    Choose one canonical price from conflicting candidates.

    Order of preference:
        1. Structured (JSON-LD / embedded JSON) price, unless a displayed
           price is higher by a VAT-like margin
        2. Most frequent offscreen price, ties broken by how often it
           appears verbatim in ``page_text``
        3. Meta tag price, then first displayed price, then pattern price
    """
    try:
        usable = [c for c in candidates if c is not None and c.amount > 0]
        if not usable:
            return ""
        usable = _in_eur(usable)

        structured = next((c for c in usable if c.is_structured), None)
        visible = [c for c in usable if c.visibility == Visibility.VISIBLE]

        if structured is not None:
            vat_matches = [
                c for c in visible
                if c.amount > structured.amount
                and matches_vat_band((c.amount - structured.amount) / structured.amount)
            ]
            if vat_matches:
                chosen = max(vat_matches, key=lambda c: c.amount)
                logger.debug(
                    "PRICE visible %s beats structured %s (VAT margin heuristic)",
                    chosen.amount, structured.amount,
                )
                return format_price(chosen.amount)
            return format_price(structured.amount)

        offscreen = [c for c in usable if c.source == PriceSource.OFFSCREEN]
        if offscreen:
            return format_price(_pick_offscreen(offscreen, page_text).amount)

        for source in (PriceSource.META, PriceSource.DOM, PriceSource.PATTERN, PriceSource.VISION):
            for c in usable:
                if c.source == source:
                    return format_price(c.amount)

        return format_price(usable[0].amount)
    except Exception as e:
        logger.warning("PRICE resolution failed: %s", e)
        return ""
