"""
Services for click attribution.

Rate limiting, eligibility, recording and stats live here, behind the
store interfaces in app.db, so the API layer only translates HTTP.
"""
