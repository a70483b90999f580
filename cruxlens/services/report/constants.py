"""Report normalization constants."""

from typing import Dict, Tuple

# Keywords matched against normalized guidepost names (lowercase, alphanumeric
# only), keyed by canonical name in taxonomy order.
GUIDEPOST_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "Rising Fixed Costs": ("fixedcost", "fixedcosts", "capex", "capitalintensity"),
    "Deregulation / New Rules": ("deregulation", "newrules", "regulation", "regulatory"),
    "Predictable Biases": ("bias", "biases", "behavioral"),
    "Incumbent Response Lags": ("incumbent", "inertia", "responselag"),
    "Attractor States": ("attractor", "endgame", "equilibrium"),
}

# Candidate names shorter than this never match by being contained in a
# canonical name.
MIN_REVERSE_MATCH_LENGTH = 4

TRUTHY_STRINGS = frozenset({"true", "yes", "1"})

SCORE_MIN = 0
SCORE_MAX = 10
SOLVABILITY_MIN = 1

DEFAULT_TITLE = "Report"
