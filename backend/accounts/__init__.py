# accounts/__init__.py
"""
Accounts app - Users and authentication for Mini ERP.

This app provides:
- User: Custom user model, login by email
- ActorContext: The authenticated owner passed to every finance command
- Registration/login endpoints issuing JWT pairs

Every finance record is owned by exactly one User.
"""
