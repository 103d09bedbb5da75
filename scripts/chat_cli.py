"""Terminal front-end for the assistant widget.

Lines are sent as chat turns. Commands: ``/go <path>`` simulates navigation,
``/clear`` clears the conversation, ``/quit`` exits.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

SRC_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from delegate_widget.widget import ChatWidget, WidgetConfig  # noqa: E402

PREFIX = {"user": "you", "bot": "bot", "suggestion": "bot*", "status": "--"}


def _render(kind: str, text: str) -> None:
    print(f"[{PREFIX.get(kind, kind)}] {text}")


async def _loop(widget: ChatWidget) -> None:
    loop = asyncio.get_running_loop()
    while True:
        line = await loop.run_in_executor(None, input, "> ")
        line = line.strip()
        if line in ("/quit", "/exit"):
            return
        if line == "/clear":
            widget.clear_conversation()
        elif line.startswith("/go "):
            tag = widget.navigate(line[4:].strip())
            print(f"[--] page: {tag.value}")
        else:
            await widget.send(line)


def main() -> None:
    parser = argparse.ArgumentParser(description="Chat with the Delegate proxy from a terminal.")
    parser.add_argument(
        "--script-src",
        type=str,
        default=os.environ.get("DELEGATE_EMBED_SRC", "http://localhost:3000/embed.js"),
        help="URL the embed script is served from; the proxy URL is derived from it",
    )
    parser.add_argument("--path", type=str, default="/", help="Initial page path (default: /)")
    parser.add_argument(
        "--history-dir",
        type=Path,
        default=Path(".delegate"),
        help="Where the conversation history is kept (default: .delegate)",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING)
    config = WidgetConfig.from_script_src(args.script_src, history_path=args.history_dir)
    widget = ChatWidget(config, _render, path=args.path)
    try:
        asyncio.run(_loop(widget))
    except (EOFError, KeyboardInterrupt):
        pass


if __name__ == "__main__":
    main()
