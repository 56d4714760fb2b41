# botgate/__init__.py
"""
Keep this file minimal so 'botgate' is always a proper package.

Do NOT import submodules here (e.g., don't import main).
Tests and runtime should import from 'botgate.main' directly:
    from botgate.main import create_app
And Uvicorn should use:
    uvicorn botgate.main:create_app --factory
"""
