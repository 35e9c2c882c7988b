#!/usr/bin/env python
import os
import sys
from dotenv import load_dotenv


def main() -> None:
    # Load .env early so runtime checks see env vars
    load_dotenv()
    # Missing keys only disable their provider; warn instead of refusing to start
    if any(cmd in sys.argv for cmd in ["runserver", "runserver_plus"]):
        from chat.environment import validate_environment

        is_valid, errors = validate_environment()
        if not is_valid:
            sys.stderr.write("Warning: environment validation failed:\n")
            for error in errors:
                sys.stderr.write(f"  - {error}\n")

    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "chorus.settings")
    from django.core.management import execute_from_command_line
    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()
