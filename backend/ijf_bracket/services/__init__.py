"""
Services Layer

Bracket logic that:
- Accepts domain inputs (competitors, brackets, match ids, a repository)
- Returns domain outputs (pydantic models, dataclasses, dicts)
- Does NOT depend on HTTP request/response objects
- Persists only through BracketRepository
"""
