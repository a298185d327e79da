"""
Authentication Module
---------------------
JWT authentication for users and IoT gateway devices.

Core Components:
- jwt_codec: issuing and verifying user, refresh and device tokens
- auth_service: login, refresh token rotation, logout, device login, reset password
- auth_dependencies: per-route requirements (required, optional, denied) and role checks

Usage:
    from smartrack.auth.auth_dependencies import AuthContext, require_user

    @router.get("/protected")
    async def protected(context: AuthContext = Depends(require_user)):
        return {"user_id": context.user.user_id}
"""
