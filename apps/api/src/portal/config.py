"""Environment loading for the portal.

Module-level settings such as the JWT secret and the database URL are read
when their modules are imported, so the dotenv files have to be loaded
before anything else in the package. ``portal/__init__.py`` does that.
"""

import os

from dotenv import find_dotenv, load_dotenv

PROJECT_ROOT = os.path.dirname(
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(__file__))))
)


def load_environment(project_root: str = PROJECT_ROOT) -> None:
    """Load ``.env.local`` from the project root, then the nearest ``.env``.

    Variables already set in the process environment are never overridden.
    """
    load_dotenv(os.path.join(project_root, ".env.local"))
    load_dotenv(find_dotenv(usecwd=True))  # Also try default .env
