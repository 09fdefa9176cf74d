"""
Shared module for code used by every part of the REST API.

STRUCTURE:
- shared.security: Authentication and authorization
  - auth.py: staff JWTs, table tokens, current_user_context, require_roles
  - password.py: Bcrypt hashing
  - rate_limit.py: slowapi limiter and key functions

- shared.infrastructure: Database and messaging
  - db.py: SQLAlchemy sessions, safe_commit()
  - correlation.py: X-Request-ID middleware
  - events/: row-change stream over Redis pub/sub

- shared.config: Configuration
  - settings.py: Environment config (pydantic-settings)
  - logging.py: Structured logging and audit events
  - constants.py: Roles, status enums, transitions, limits

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - validators.py: Input validation, SSRF prevention
  - schemas.py: Pydantic request/response schemas
  - field_mapping.py: camelCase mirror fields

IMPORT EXAMPLES:
    from shared.security.auth import verify_jwt, current_table_context
    from shared.infrastructure.db import get_db, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import Roles, OrderItemStatus
    from shared.utils.exceptions import NotFoundError, ForbiddenError
"""
