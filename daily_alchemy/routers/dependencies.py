from typing import Optional

from fastapi import Depends, Header

from daily_alchemy.core.config import Settings, settings
from daily_alchemy.core.errors import PermissionDenied
from daily_alchemy.llm.llm_manager import get_llm
from daily_alchemy.llm.oracle_adapter import OracleAdapter, RetryPolicy


def get_settings() -> Settings:
    return settings


def get_oracle(app_settings: Settings = Depends(get_settings)) -> OracleAdapter:
    """Oracle for the configured model, built per request"""
    return OracleAdapter(get_llm(app_settings.ORACLE_MODEL), RetryPolicy.from_settings(app_settings))


def get_actor(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    return x_user_id.strip() if x_user_id and x_user_id.strip() else None


def require_user(actor: Optional[str] = Depends(get_actor)) -> str:
    if actor is None:
        raise PermissionDenied("Sign in to play")
    return actor


def is_admin(x_admin_token: Optional[str] = Header(None),
             app_settings: Settings = Depends(get_settings)) -> bool:
    return bool(app_settings.ADMIN_TOKEN) and x_admin_token == app_settings.ADMIN_TOKEN


def require_admin(admin: bool = Depends(is_admin)) -> bool:
    if not admin:
        raise PermissionDenied("Admin only")
    return True


def has_archive_entitlement(x_archive_entitlement: Optional[str] = Header(None),
                            admin: bool = Depends(is_admin)) -> bool:
    return admin or (x_archive_entitlement or "").strip().lower() in ("1", "true", "yes")
