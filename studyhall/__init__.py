"""
StudyHall — Study Platform API with Community Moderation
=========================================================
Serves a curated resource library, a private file/link vault, a community
discussion feed, and the administrative tools that keep that feed healthy:
bans, mutes, warnings with automatic escalation, reports, pinning and
announcements.

Package layout::

    studyhall/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Roles, statuses, thresholds
    ├── errors.py          # NotFound / Forbidden / Validation / Conflict
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session + async helper
    │   └── models.py      # All ORM models
    ├── engine/
    │   ├── policy.py      # Moderation policy (pure allow/deny rules)
    │   └── views.py       # Hydrated read models (posts, reports)
    ├── services/
    │   ├── profile_service.py      # Identity & trust store
    │   ├── moderation_service.py   # Ban / mute / warn + escalation
    │   ├── community_service.py    # Posts, replies, reactions
    │   ├── report_service.py       # Report pipeline
    │   ├── announcement_service.py # Admin broadcasts
    │   ├── library_service.py      # Library items, ratings, comments, vault
    │   ├── audit.py                # admin_log writer
    │   └── upload_service.py       # Upload destination issuance
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # JWT → identity → profile
        └── routes/        # REST endpoints
"""

__version__ = "0.1.0"
