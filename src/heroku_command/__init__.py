"""heroku_command -- credentialed client for the Heroku Platform API.

This package is the shared foundation for Heroku CLI commands: it finds the
user's credential, sends authenticated API requests (answering two-factor
challenges transparently), negotiates new logins and revokes old ones.

Typical usage::

    from heroku_command.client import create_client

    async with create_client() as heroku:
        account = (await heroku.get("/account")).body

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG paths, platform hosts and login settings.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.1.0"
