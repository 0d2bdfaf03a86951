from flask import request

from . import bp
from ..services import get_services
from ..utils.api import ok
from ..utils.decorators import current_email


@bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    result = get_services().auth.register(data.get("email"), data.get("password"), data.get("name"))
    return ok("Registered", result, 201)


@bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    return ok("Logged in", get_services().auth.login(data.get("email"), data.get("password")))


@bp.post("/refresh")
def refresh():
    data = request.get_json(silent=True) or {}
    return ok("Token refreshed", get_services().auth.refresh(data.get("refresh_token")))


@bp.get("/me")
def me():
    return ok("Profile", get_services().auth.get_profile(current_email()))


@bp.patch("/me")
def update_me():
    data = request.get_json(silent=True) or {}
    user = get_services().auth.update_profile(current_email(), data.get("name"), data.get("password"))
    return ok("Profile updated", user)


@bp.post("/password/forgot")
def forgot_password():
    # the token would normally be mailed; mail delivery is not part of this service
    data = request.get_json(silent=True) or {}
    return ok("Password reset token issued", get_services().auth.request_password_reset(data.get("email")))


@bp.post("/password/reset")
def reset_password():
    data = request.get_json(silent=True) or {}
    get_services().auth.reset_password(data.get("token"), data.get("password"))
    return ok("Password has been reset")
