from __future__ import annotations

TARGET_COL = "population"
YEAR_COL   = "year"
SCALED_COL = "scaled_year"
SERIES_COL = "series_id"

# taxonomic/location metadata carried through the long-form reshape
META_COLS: list[str] = ["genus", "species", "country"]

# raw header -> canonical name (LPI exports use R-style dotted headers)
HEADER_ALIASES: dict[str, str] = {
    "country.list": "country",
    "country_list": "country",
}
