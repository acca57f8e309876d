"""
Entry point: `cmsctl …` or `python -m cmsctl …`.
"""
import sys

from .builtins import install
from .pipeline import Application


def create_application(name="cmsctl", /, **options):
    """
    A fresh application with the built-in commands installed; extra options go to Application.
    """
    return install(Application(name, **options))


def main():
    sys.exit(create_application().run())


if __name__ == "__main__":
    main()
