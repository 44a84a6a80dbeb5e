"""
State FIPS Codes and Census Constants

Fixed ordering used by every per-state acquisition step.
"""
from typing import Dict, List, NamedTuple


class StateFIPS(NamedTuple):
    fips: str
    name: str
    abbreviation: str


STATE_FIPS_CODES: List[StateFIPS] = [
    StateFIPS("01", "Alabama", "AL"),
    StateFIPS("02", "Alaska", "AK"),
    StateFIPS("04", "Arizona", "AZ"),
    StateFIPS("05", "Arkansas", "AR"),
    StateFIPS("06", "California", "CA"),
    StateFIPS("08", "Colorado", "CO"),
    StateFIPS("09", "Connecticut", "CT"),
    StateFIPS("10", "Delaware", "DE"),
    StateFIPS("11", "District of Columbia", "DC"),
    StateFIPS("12", "Florida", "FL"),
    StateFIPS("13", "Georgia", "GA"),
    StateFIPS("15", "Hawaii", "HI"),
    StateFIPS("16", "Idaho", "ID"),
    StateFIPS("17", "Illinois", "IL"),
    StateFIPS("18", "Indiana", "IN"),
    StateFIPS("19", "Iowa", "IA"),
    StateFIPS("20", "Kansas", "KS"),
    StateFIPS("21", "Kentucky", "KY"),
    StateFIPS("22", "Louisiana", "LA"),
    StateFIPS("23", "Maine", "ME"),
    StateFIPS("24", "Maryland", "MD"),
    StateFIPS("25", "Massachusetts", "MA"),
    StateFIPS("26", "Michigan", "MI"),
    StateFIPS("27", "Minnesota", "MN"),
    StateFIPS("28", "Mississippi", "MS"),
    StateFIPS("29", "Missouri", "MO"),
    StateFIPS("30", "Montana", "MT"),
    StateFIPS("31", "Nebraska", "NE"),
    StateFIPS("32", "Nevada", "NV"),
    StateFIPS("33", "New Hampshire", "NH"),
    StateFIPS("34", "New Jersey", "NJ"),
    StateFIPS("35", "New Mexico", "NM"),
    StateFIPS("36", "New York", "NY"),
    StateFIPS("37", "North Carolina", "NC"),
    StateFIPS("38", "North Dakota", "ND"),
    StateFIPS("39", "Ohio", "OH"),
    StateFIPS("40", "Oklahoma", "OK"),
    StateFIPS("41", "Oregon", "OR"),
    StateFIPS("42", "Pennsylvania", "PA"),
    StateFIPS("44", "Rhode Island", "RI"),
    StateFIPS("45", "South Carolina", "SC"),
    StateFIPS("46", "South Dakota", "SD"),
    StateFIPS("47", "Tennessee", "TN"),
    StateFIPS("48", "Texas", "TX"),
    StateFIPS("49", "Utah", "UT"),
    StateFIPS("50", "Vermont", "VT"),
    StateFIPS("51", "Virginia", "VA"),
    StateFIPS("53", "Washington", "WA"),
    StateFIPS("54", "West Virginia", "WV"),
    StateFIPS("55", "Wisconsin", "WI"),
    StateFIPS("56", "Wyoming", "WY"),
    StateFIPS("72", "Puerto Rico", "PR"),
    StateFIPS("78", "Virgin Islands", "VI"),
    StateFIPS("66", "Guam", "GU"),
    StateFIPS("69", "Northern Mariana Islands", "MP"),
    StateFIPS("60", "American Samoa", "AS"),
]

STATES_BY_FIPS: Dict[str, StateFIPS] = {state.fips: state for state in STATE_FIPS_CODES}

# ACS 5-year variables, in request order
CENSUS_ACS_VARIABLES: Dict[str, str] = {
    "total_population": "B01001_001E",
    "poverty_universe": "B17001_001E",
    "poverty_below": "B17001_002E",
    "median_household_income": "B19013_001E",
    "median_family_income": "B19113_001E",
}


def select_states(fips_codes: List[str]) -> List[StateFIPS]:
    """
    Filter STATE_FIPS_CODES to the requested codes, keeping the fixed order.

    An empty list selects every state.
    """
    if not fips_codes:
        return list(STATE_FIPS_CODES)

    unknown = [code for code in fips_codes if code not in STATES_BY_FIPS]
    if unknown:
        raise ValueError(f"Unknown state FIPS code(s): {', '.join(unknown)}")

    wanted = set(fips_codes)
    return [state for state in STATE_FIPS_CODES if state.fips in wanted]
