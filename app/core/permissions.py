from typing import List, Dict, Any
from fastapi import Request
from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.security import verify_token


class Roles:
    """Staff roles carried in the access token"""
    
    ADMIN = "ADMIN"
    DOCTOR = "DOCTOR"
    NURSE = "NURSE"
    RECEPTIONIST = "RECEPTIONIST"


class RoleGroups:
    """Role combinations granted to each IPD endpoint"""
    
    ALL_STAFF = [Roles.ADMIN, Roles.DOCTOR, Roles.NURSE, Roles.RECEPTIONIST]
    
    LEDGER_READ = ALL_STAFF
    LEDGER_POST = ALL_STAFF
    BED_CHARGE_RUN = [Roles.ADMIN, Roles.NURSE, Roles.RECEPTIONIST]
    
    ADMISSIONS_READ = ALL_STAFF
    ADMISSIONS_CREATE = [Roles.ADMIN, Roles.DOCTOR, Roles.NURSE]
    ADMISSIONS_UPDATE = ALL_STAFF
    
    FINALIZE = [Roles.ADMIN, Roles.RECEPTIONIST]
    
    WARDS_READ = ALL_STAFF
    WARDS_MANAGE = [Roles.ADMIN]
    BEDS_UPDATE = [Roles.ADMIN, Roles.DOCTOR, Roles.NURSE]


def get_current_user(request: Request) -> Dict[str, Any]:
    """Principal (sub, role) from the Bearer access token"""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise AuthenticationError()
    
    payload = verify_token(auth_header.split(" ", 1)[1], "access")
    if not payload or not payload.get("sub"):
        raise AuthenticationError("Invalid or expired token")
    
    return payload


def require_roles(allowed_roles: List[str]):
    """Dependency that admits only principals whose role is in allowed_roles"""
    def role_checker(request: Request) -> Dict[str, Any]:
        user_payload = get_current_user(request)
        request.state.user = user_payload
        
        role = str(user_payload.get("role", "")).upper()
        if role not in allowed_roles:
            raise AuthorizationError(details={"role": role or None})
        
        return user_payload
    
    return role_checker
