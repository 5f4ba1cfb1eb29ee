"""
Example 01: Transform a Message Window
======================================

Demonstrates the request-time hook of Context Jar:
- Building a transcript with repeated reads and an edit of the same file
- Running transform_messages() to consolidate it to one read per file
- Going idle, which arms finalization and posts a token summary
- Running the next request, which finalizes edited files into synthetic reads

No host is needed: a tiny in-memory client stands in for the host SDK.

Run:
    uv run python examples/01_transform_window.py
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from contextjar import ChatMessage, ContextJar, ContextJarConfig  # noqa: E402


class PrintingSession:
    async def diff(self, **kwargs):
        return []

    async def prompt(self, **kwargs):
        for part in kwargs["body"]["parts"]:
            print(part["text"])


class PrintingClient:
    session = PrintingSession()


def tool(call_id, name, file_path, output="", **extra):
    return {
        "type": "tool",
        "callID": call_id,
        "tool": name,
        "state": {
            "status": "completed",
            "input": {"filePath": file_path, **extra.pop("input", {})},
            "output": output,
            "title": file_path,
            "metadata": extra.pop("metadata", {}),
            "time": {"start": 0, "end": 1},
        },
    }


def build_window():
    info = {"sessionID": "sess_demo", "path": {"root": "/repo", "cwd": "/repo"}}
    user = {
        "info": {**info, "role": "user", "agent": "build",
                 "model": {"providerID": "anthropic", "modelID": "claude-sonnet"}},
        "parts": [{"type": "text", "text": "Rename the helper in util.py"}],
    }
    assistant = {
        "info": {**info, "role": "assistant"},
        "parts": [
            tool("c1", "read", "util.py", "<file>\n00001| def helper(): ...\n</file>"),
            tool("c2", "read", "util.py", "<file>\n00001| def helper(): ...\n</file>"),
            tool("c3", "edit", "util.py", "Edit applied.",
                 metadata={"filediff": {"after": "def renamed(): ...\n"}}),
        ],
    }
    return [ChatMessage.model_validate(m) for m in (user, assistant)]


def show(title, messages):
    print(f"\n── {title} ──")
    for message in messages:
        for part in message.parts:
            if part.type == "tool":
                print(f"  {message.role:9} {part.tool:6} {part.call_id}")


async def main():
    jar = ContextJar(PrintingClient(), ContextJarConfig(), worktree="/repo")
    messages = build_window()
    show("before", messages)

    delta = await jar.transform_messages(messages)
    show(f"after consolidation (net {delta.net} tokens)", messages)

    print()
    await jar.on_session_idle("sess_demo")

    delta = await jar.transform_messages(messages)
    show(f"after finalization (net {delta.net} tokens)", messages)


if __name__ == "__main__":
    asyncio.run(main())
