"""
advisor/constants.py

Clinical bounds used by rule validation and dose composition.
All numeric limits must be referenced from this module.
"""

# ── Rule bounds ──────────────────────────────────────────────
THRESHOLD_MIN_MGDL: int = 0
ADJUSTMENT_MIN_UNITS: int = -20
ADJUSTMENT_MAX_UNITS: int = 20

# ── Glucose reading bounds (mg/dL) ───────────────────────────
GLUCOSE_MIN_MGDL: int = 20
GLUCOSE_MAX_MGDL: int = 600

# ── Dose bounds (units) ──────────────────────────────────────
DOSE_FLOOR_UNITS: float = 0.0
DOSE_DECIMAL_PLACES: int = 1
PRESET_MAX_UNITS: float = 999.9

# ── Calendar offsets (days) for day qualifiers ───────────────
PREVIOUS_DAY_OFFSET: int = -1
SAME_DAY_OFFSET: int = 0
NEXT_DAY_OFFSET: int = 1
