COUNTRY_NAMES: dict[str, str] = {
    "DE": "Germany",
    "NL": "Netherlands",
    "UK": "United Kingdom",
    "GB": "United Kingdom",
    "CA": "Canada",
    "AU": "Australia",
    "SG": "Singapore",
    "AE": "UAE",
    "PT": "Portugal",
    "ES": "Spain",
    "FR": "France",
    "US": "United States",
    "JP": "Japan",
    "KR": "South Korea",
    "NZ": "New Zealand",
    "CH": "Switzerland",
    "SE": "Sweden",
    "NO": "Norway",
    "DK": "Denmark",
    "IE": "Ireland",
    "AT": "Austria",
}


def country_name(code: str) -> str:
    return COUNTRY_NAMES.get((code or "").upper(), code)
