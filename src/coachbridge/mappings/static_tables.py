"""Compiled-in fallback tables for organization, metric and industry names.

These are consulted only when no dynamic alias rule matched. Dictionary order
matters: the substring pass returns the first key (in declaration order) found
inside the input.
"""
from __future__ import annotations

import re
from typing import Dict, List, Optional, Pattern, Tuple

from ..common.text_normalizer import coerce_string, upper_collapse

ORG_ALIASES: Dict[str, str] = {
    # United Health
    "united health care": "UHC",
    "united healthcare": "UHC",
    "united health group": "UHC",
    "unitedhealthcare": "UHC",
    "unitedhealth": "UHC",
    "uhc": "UHC",
    "uhg": "UHC",
    # Optum
    "optum": "OPTUM UBH",
    "optum ubh": "OPTUM UBH",
    "optum behavioral": "OPTUM UBH",
    # AT&T
    "at&t": "ATT MEXICO",
    "att": "ATT MEXICO",
    "at&t mexico": "ATT MEXICO",
    # T-Mobile
    "t-mobile": "T-MOBILE",
    "tmobile": "T-MOBILE",
    "t mobile": "T-MOBILE",
    # Sirius XM
    "sirius": "SIRIUS XM RADIO",
    "siriusxm": "SIRIUS XM RADIO",
    "sirius xm": "SIRIUS XM RADIO",
    # Blue Shield of California
    "blue shield": "BSC",
    "blue shield of california": "BSC",
    "bsc": "BSC",
    "sams club": "SAMS CLUB",
    "sam's club": "SAMS CLUB",
    "macys": "MACYS",
    "macy's": "MACYS",
    "keurig": "KEURIG DR PEPPER",
    "dr pepper": "KEURIG DR PEPPER",
    "keurig dr. pepper": "KEURIG DR PEPPER",
    "mercedes": "MERCEDES BENZ",
    "mercedes-benz": "MERCEDES BENZ",
    "delta": "DELTA AIR LINES",
    "delta airlines": "DELTA AIR LINES",
    "extended stay": "EXTENDED STAY AMERICA",
    "extended stay america": "EXTENDED STAY AMERICA",
    "liberty": "LIBERTY MUTUAL",
    "pitney": "PITNEY BOWES",
    "american eagle": "AMERICAN EAGLE OUTFITTERS",
    "aeo": "AMERICAN EAGLE OUTFITTERS",
    "coca cola": "COCA COLA",
    "coca-cola": "COCA COLA",
    "coke": "COCA COLA",
    "energy aus": "ENERGY AUSTRALIA",
    "energyaustralia": "ENERGY AUSTRALIA",
    "nomad": "NOMAD INTERNET",
    "remodel": "REMODEL HEALTH",
    "tripadvisor": "TRIPADVISOR",
    "trip advisor": "TRIPADVISOR",
    "vantive": "VANTIVE HEALTH",
    "teleperformance": "TP",
}

_AHT_SUFFIXES = (
    "after\\s*call|calls|chat|combined|ecomm|email|emails|goal|hd|leader|lobs|on\\s*call|"
    "pams|phone|prep|sales|service|some|spanish|tickets|to\\s*goal|voice"
)

METRIC_PATTERNS: List[Tuple[str, List[Pattern[str]]]] = [
    (
        "NPS",
        [
            re.compile(r"nps", re.IGNORECASE),
            re.compile(r"net\s*promoter", re.IGNORECASE),
        ],
    ),
    (
        "RELEASE RATE",
        [
            re.compile(r"release\s*rate", re.IGNORECASE),
            re.compile(r"^release$", re.IGNORECASE),
            # attrition is reported under the same heading
            re.compile(r"\battrition\b", re.IGNORECASE),
        ],
    ),
    (
        "AHT",
        [
            re.compile(r"^aht$", re.IGNORECASE),
            re.compile(rf"^aht\s+({_AHT_SUFFIXES})$", re.IGNORECASE),
            re.compile(r"^(ave|average)\s*handle\s*time", re.IGNORECASE),
            re.compile(r"^(chat|phone|ticket|combined|total|ib|opc|rpc|tx|inbound)\s*aht", re.IGNORECASE),
            re.compile(r"^handle\s*time\s*\(fa\)$", re.IGNORECASE),
            re.compile(r"^chat\s*handle\s*time", re.IGNORECASE),
        ],
    ),
    (
        "ATTENDANCE",
        [
            re.compile(r"^attendance", re.IGNORECASE),
            re.compile(r"^reliability$", re.IGNORECASE),
            re.compile(r"^schedule\s*reliability", re.IGNORECASE),
            re.compile(r"^absenteeism", re.IGNORECASE),
            re.compile(r"^unplanned\s*absenteeism", re.IGNORECASE),
        ],
    ),
]

INDUSTRY_KEYWORDS: Dict[str, str] = {
    # Healthcare
    "uhc": "HEALTHCARE",
    "united health": "HEALTHCARE",
    "unitedhealthcare": "HEALTHCARE",
    "optum": "HEALTHCARE",
    "blue shield": "HEALTHCARE",
    "bsc": "HEALTHCARE",
    "anthem": "HEALTHCARE",
    "cigna": "HEALTHCARE",
    "humana": "HEALTHCARE",
    "kaiser": "HEALTHCARE",
    "aetna": "HEALTHCARE",
    "vantive": "HEALTHCARE",
    "remodel health": "HEALTHCARE",
    # Telecommunications
    "at&t": "TELECOMMUNICATIONS",
    "att": "TELECOMMUNICATIONS",
    "t-mobile": "TELECOMMUNICATIONS",
    "tmobile": "TELECOMMUNICATIONS",
    "verizon": "TELECOMMUNICATIONS",
    "sprint": "TELECOMMUNICATIONS",
    "sirius": "TELECOMMUNICATIONS",
    "siriusxm": "TELECOMMUNICATIONS",
    "nomad internet": "TELECOMMUNICATIONS",
    # Retail
    "sams club": "RETAIL",
    "sam's club": "RETAIL",
    "walmart": "RETAIL",
    "macys": "RETAIL",
    "macy's": "RETAIL",
    "american eagle": "RETAIL",
    "aeo": "RETAIL",
    "target": "RETAIL",
    "costco": "RETAIL",
    # Food & beverage
    "coca cola": "FOOD & BEVERAGE",
    "coca-cola": "FOOD & BEVERAGE",
    "coke": "FOOD & BEVERAGE",
    "keurig": "FOOD & BEVERAGE",
    "dr pepper": "FOOD & BEVERAGE",
    "pepsi": "FOOD & BEVERAGE",
    # Automotive
    "mercedes": "AUTOMOTIVE",
    "mercedes-benz": "AUTOMOTIVE",
    "ford": "AUTOMOTIVE",
    "gm": "AUTOMOTIVE",
    "toyota": "AUTOMOTIVE",
    "honda": "AUTOMOTIVE",
    # Travel & hospitality
    "delta": "TRAVEL & HOSPITALITY",
    "delta airlines": "TRAVEL & HOSPITALITY",
    "extended stay": "TRAVEL & HOSPITALITY",
    "esa": "TRAVEL & HOSPITALITY",
    "marriott": "TRAVEL & HOSPITALITY",
    "hilton": "TRAVEL & HOSPITALITY",
    "tripadvisor": "TRAVEL & HOSPITALITY",
    # Financial services
    "liberty mutual": "FINANCIAL SERVICES",
    "liberty": "FINANCIAL SERVICES",
    "allstate": "FINANCIAL SERVICES",
    "geico": "FINANCIAL SERVICES",
    "progressive": "FINANCIAL SERVICES",
    "state farm": "FINANCIAL SERVICES",
    # Technology
    "pitney bowes": "TECHNOLOGY",
    "pitney": "TECHNOLOGY",
    "microsoft": "TECHNOLOGY",
    "apple": "TECHNOLOGY",
    "google": "TECHNOLOGY",
    # Utilities
    "energy australia": "UTILITIES",
    "energyaustralia": "UTILITIES",
}


def _lookup(table: Dict[str, str], text: str) -> Optional[str]:
    lowered = text.lower()
    hit = table.get(lowered)
    if hit is not None:
        return hit
    for key, canonical in table.items():
        if key in lowered:
            return canonical
    return None


def derive_canonical_org(raw: object) -> Optional[str]:
    """Map an organization cell to its canonical name.

    Unknown organizations come back upper-cased with whitespace collapsed, so
    the result is only None for blank input.
    """
    text = coerce_string(raw)
    if text is None:
        return None
    return _lookup(ORG_ALIASES, text) or upper_collapse(text)


def derive_canonical_metric(raw: object) -> Optional[str]:
    text = coerce_string(raw)
    if text is None:
        return None
    for canonical, patterns in METRIC_PATTERNS:
        if any(p.search(text) for p in patterns):
            return canonical
    return upper_collapse(text)


def derive_canonical_industry(raw: object) -> Optional[str]:
    """Industry for an organization name, or None when it is not known."""
    text = coerce_string(raw)
    if text is None:
        return None
    return _lookup(INDUSTRY_KEYWORDS, text)
