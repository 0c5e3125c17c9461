from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from ..settings import settings
from ..service import DrillService, get_service
from ..stats import DashboardStats, dashboard_stats

router = APIRouter(prefix="/session", tags=["session"])

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/session/login")


class LoginRequest(BaseModel):
	name: str


class Identity(BaseModel):
	name: str
	session_id: str


class Token(BaseModel):
	access_token: str
	token_type: str = "bearer"
	name: str
	view: str


class Me(BaseModel):
	name: str
	view: str
	stats: DashboardStats


def _resolve_expiry(expires_delta: Optional[timedelta]) -> datetime:
	delta = expires_delta
	if delta is None:
		minutes = settings.access_token_expire_minutes
		delta = timedelta(minutes=minutes) if minutes > 0 else timedelta(days=1)
	return datetime.now(timezone.utc) + delta


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	to_encode.update({"exp": _resolve_expiry(expires_delta)})
	return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def get_current_user(token: str = Depends(oauth2_scheme), service: DrillService = Depends(get_service)) -> Identity:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
		name: str | None = payload.get("sub")
		jti: str | None = payload.get("jti")
		if name is None or jti is None:
			raise credentials_exception
	except JWTError:
		raise credentials_exception
	# The session only lives in memory; a restart or logout invalidates the token
	if not service.touch(jti):
		raise credentials_exception
	return Identity(name=name, session_id=jti)


@router.post("/login", response_model=Token)
async def login(req: LoginRequest, service: DrillService = Depends(get_service)):
	try:
		ctx = service.login(req.name)
	except ValueError as e:
		raise HTTPException(status_code=400, detail=str(e))
	access_token = create_access_token({"sub": ctx.user.name, "jti": ctx.session_id})
	return Token(access_token=access_token, name=ctx.user.name, view=ctx.view.value)


@router.get("/me", response_model=Me)
async def me(user: Identity = Depends(get_current_user), service: DrillService = Depends(get_service)):
	ctx = service.get(user.session_id)
	return Me(name=ctx.user.name, view=ctx.view.value, stats=dashboard_stats(ctx.user))


@router.post("/logout")
async def logout(user: Identity = Depends(get_current_user), service: DrillService = Depends(get_service)):
	service.logout(user.session_id)
	return {"ok": True}
