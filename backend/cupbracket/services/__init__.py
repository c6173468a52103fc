"""
Services Layer

Tournament logic that:
- Accepts domain inputs (sessions, models, IDs)
- Returns domain outputs (models, dicts)
- Raises BracketError subclasses, never HTTP exceptions
- Top-level operations commit (or roll back) their own transaction;
  helpers they call (standings, advancement) never commit
"""
