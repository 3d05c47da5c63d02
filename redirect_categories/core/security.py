import hashlib
import hmac

from fastapi import Depends, Header, HTTPException, status

from redirect_categories.core.auth import Principal, PrincipalType, parse_machine_credentials
from redirect_categories.core.config import Settings, get_settings


async def get_machine_principal(
    settings: Settings = Depends(get_settings),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    x_module_id: str | None = Header(default=None, alias="X-Module-Id"),
) -> Principal:
    if not x_api_key or not x_module_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"machine auth requires {settings.api_key_header} and X-Module-Id",
        )

    try:
        credentials = parse_machine_credentials(settings.machine_credentials_json)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    credential = credentials.get(x_module_id)
    key_hash = hashlib.sha256(x_api_key.encode("utf-8")).hexdigest()
    if credential is None or not hmac.compare_digest(credential.key_hash, key_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid module credentials")

    return Principal(
        principal_type=PrincipalType.MACHINE,
        subject=credential.module_id,
        scopes=set(credential.scopes),
    )


def require_scopes(principal: Principal, scopes: set[str]) -> None:
    try:
        principal.require_scopes(scopes)
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
