"""Entry point: python -m azcli_inventory [/command ...]"""

import asyncio
import sys

from azcli_inventory.cli.app import InventoryApp


def main() -> int:
    app = InventoryApp()
    return asyncio.run(app.run(sys.argv[1:]))


if __name__ == "__main__":
    raise SystemExit(main())
