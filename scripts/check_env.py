from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv


def main() -> int:
    load_dotenv()
    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    from chat.environment import log_environment_status
    from chat.services.providers import PROVIDERS

    ok = log_environment_status()

    print("Available models:")
    for provider in PROVIDERS.values():
        print(f"{provider.name}:")
        for model in provider.models:
            print(f"- {model.id}: {model.description}")
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
