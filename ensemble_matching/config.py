# ensemble_matching/config.py

# Vocabularies
DOMAINS = ("acting", "crew")
FOCUSES = ("acting", "tech", "both")
DOCUMENT_STATUSES = ("complete", "pending", "missing")
GENDERS = ("female", "male", "diverse", "no_answer", "custom", "unknown")

# Which focus values count as "aligned" with a domain
DOMAIN_FOCUS = {
    "acting": ("acting", "both"),
    "crew": ("tech", "both"),
}

# (id, label, min_age, max_age), inclusive bounds
AGE_BUCKETS = (
    ("under18", "<18", None, 17),
    ("18_25", "18–25", 18, 25),
    ("26_40", "26–40", 26, 40),
    ("over40", ">40", 41, None),
)
MINOR_MAX_AGE = 17

# Known targets: code -> (label, domain)
TARGET_CATALOGUE = {
    "acting_lead": ("Schauspiel – Hauptrolle", "acting"),
    "acting_medium": ("Schauspiel – Mittelrolle", "acting"),
    "acting_scout": ("Schauspiel – Scout", "acting"),
    "acting_statist": ("Schauspiel – Statist", "acting"),
    "crew_stage": ("Bühne", "crew"),
    "crew_light": ("Licht", "crew"),
    "crew_sound": ("Ton", "crew"),
    "crew_costume": ("Kostüm", "crew"),
    "crew_props": ("Requisite", "crew"),
}

# Domains whose targets need guardian paperwork for minors
GUARDIAN_DOCUMENT_DOMAINS = frozenset({"acting", "crew"})

# -----------------------------------------------------------
# Scoring
# -----------------------------------------------------------
MAX_PREFERENCE_WEIGHT = 100
HIGH_WEIGHT_THRESHOLD = 70

QUALITY_BASE = 1.0
QUALITY_TENURE_BONUS = 0.15
QUALITY_PROFILE_COMPLETE_BONUS = 0.05
QUALITY_DOCUMENT_COMPLETE_BONUS = 0.05
QUALITY_DOCUMENT_MISSING_PENALTY = 0.05
QUALITY_FOCUS_MATCH_BONUS = 0.2
QUALITY_FOCUS_MISMATCH_PENALTY = {
    "acting": 0.1,
    "crew": 0.05,
}

SCORE_PRECISION = 4
REPORT_PRECISION = 3

# -----------------------------------------------------------
# Fairness
# -----------------------------------------------------------
FAIRNESS_DIMENSIONS = ("focus", "age", "experience", "documents", "gender")

# dimension -> (warning, critical) absolute share deviation
FAIRNESS_THRESHOLDS = {
    "focus": (0.10, 0.20),
    "age": (0.10, 0.20),
    "experience": (0.15, 0.25),
    "documents": (0.10, 0.20),
    "gender": (0.10, 0.20),
}

MAX_FAIRNESS_SWAPS = 10
SWAP_SCORE_EPSILON = 0.05

# -----------------------------------------------------------
# Conflicts
# -----------------------------------------------------------
NEAR_TIE_THRESHOLD = 0.02
CONFLICT_CONTEXT_SIZE = 3

# Recent solutions kept for conflict lookup
SOLUTION_STORE_SIZE = 10

# Toy data knobs
NUM_CANDIDATES_DEFAULT = 40
DEFAULT_SEED = 42
DEFAULT_CAPACITIES = {
    "acting_lead": 2,
    "acting_medium": 4,
    "acting_statist": 6,
    "crew_stage": 5,
    "crew_light": 3,
    "crew_sound": 2,
    "crew_costume": 3,
    "crew_props": 2,
}
