# =======================================================================================
# village_gate/api/routes/auth.py - Gate Console Authentication Endpoints
# =======================================================================================
from fastapi import APIRouter, Depends
from ...models.schemas import ErrorResponse, LoginRequest, LoginResponse, UserInfo
from ...services.auth_service import AuthService
from ...utils.exceptions import AuthenticationRequired
from ...utils.validators import to_aware_utc
from ..dependencies import get_auth_service

router = APIRouter()


@router.post("/auth/login", response_model=LoginResponse, responses={401: {"model": ErrorResponse}})
def login(request: LoginRequest, auth_service: AuthService = Depends(get_auth_service)):
    user = auth_service.authenticate(request.username, request.password)
    if not user:
        raise AuthenticationRequired("Invalid username or password")

    token, expires_at = auth_service.issue_token(user["id"])
    return LoginResponse(token=token, expires_at=to_aware_utc(expires_at), user=UserInfo(**user))
