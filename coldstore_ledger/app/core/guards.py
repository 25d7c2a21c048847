"""
Access guards.

Reads are open to any authenticated caller; every ledger mutation needs
edit access.
"""

from fastapi import Depends
from coldstore_ledger.app.core.dependencies import CallerContext, get_caller_context
from coldstore_ledger.app.core.exceptions import InsufficientPermissionsError


def require_edit_access(caller: CallerContext = Depends(get_caller_context)) -> CallerContext:
    """
    Dependency for mutating endpoints.

    Usage:
        @router.post("/receipts")
        async def record_receipt(caller: CallerContext = Depends(require_edit_access)):
            ...

    Raises:
        InsufficientPermissionsError (403) if the caller only has view access
    """
    if not caller.can_edit:
        raise InsufficientPermissionsError(
            "Edit access required",
            details={"cold_storage_id": caller.cold_storage_id, "access_type": caller.access_type.value},
        )
    return caller
