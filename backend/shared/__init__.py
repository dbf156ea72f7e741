"""
Shared module for common utilities used by the order API.

STRUCTURE:
- shared.infrastructure: Database and messaging
  - db.py: SQLAlchemy sessions, safe_commit()
  - correlation.py: Request id middleware and logging filter
  - events/: Redis pub/sub, change event publishing

- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging
  - constants.py: Order/item/handover statuses, commission modes

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - schemas.py: Pydantic request/response schemas

IMPORT EXAMPLES:
    from shared.infrastructure.db import get_db, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import OrderStatus, CompanyCommissionType
    from shared.utils.exceptions import OrderNotFoundError, ValidationError
"""
