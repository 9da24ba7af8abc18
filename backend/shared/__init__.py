"""
Shared module for common utilities used by the REST API.

STRUCTURE:
- shared.security: Authentication
  - auth.py: JWT verification, current_actor dependency

- shared.infrastructure: Database and request plumbing
  - db.py: SQLAlchemy sessions, safe_commit()
  - correlation.py: X-Request-ID middleware and log filter

- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging
  - constants.py: Statuses, change types, watched fields

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging and error codes
  - validators.py: Text normalization, LIKE escaping
  - lot_code.py: Production lot codes
  - schemas.py: Shared Pydantic schemas

IMPORT EXAMPLES:
    from shared.security.auth import current_actor
    from shared.infrastructure.db import get_db, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import ChangeType, ProductionStatus
    from shared.utils.exceptions import NotFoundError, InvalidProductionContextError
"""

# This module does not provide re-exports.
# All imports should use the canonical paths as documented above.
