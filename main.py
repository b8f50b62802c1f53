#!/usr/bin/env python3
"""Browser Panel Entry Point

Opens one browser panel in a headless host and keeps it alive until
interrupted.

Usage:
    python main.py                          # Configured start URL
    python main.py https://example.com      # Custom URL
    python main.py --file ./index.html      # Local file (auto-reload if enabled)
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

# Configure logging (goes to terminal)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)


async def run(url=None, filepath=None) -> None:
    from core.host import HeadlessHost
    from core.panel_manager import PanelManager

    host = HeadlessHost()
    manager = PanelManager(host)

    if filepath:
        panel = await manager.create_from_file(filepath)
    else:
        panel = await manager.create(url)

    closed = asyncio.Event()
    manager.events.subscribe(lambda event: closed.set() if not manager.panels else None)
    await panel.focus()

    try:
        await closed.wait()
    finally:
        await manager.dispose_all()
        await host.teardown()


def main():
    """Start one panel and wait."""
    parser = argparse.ArgumentParser(description="Embedded browser panel")
    parser.add_argument("url", nargs="?", help="URL to open (default: configured start_url)")
    parser.add_argument("--file", dest="filepath", help="Local file to open instead of a URL")
    args = parser.parse_args()

    try:
        asyncio.run(run(args.url, args.filepath))
        return 0
    except KeyboardInterrupt:
        print("\nPanel closed")
        return 0
    except Exception as e:
        logging.error(f"Panel error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
