#!/usr/bin/env python3
"""
Terminal chat against a running relay, printing the reply as it streams.

    python scripts/chat_cli.py someone@example.com hunter22

Commands: /new  /list  /use <id>  /share  /delete  /quit
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from app.auth.session import LocalSessionProvider
from app.core.db import create_all
from app.services.chat_session import ChatSession
from app.services.conversation_store import SqlConversationStore
from app.services.errors import AuthError, TurnRejected
from app.services.relay_client import RelayClient


def main(email: str, password: str) -> None:
    create_all()
    auth = LocalSessionProvider()
    printed = {"id": None, "len": 0}

    def on_update(msg):
        if msg.role != "assistant":
            return
        if printed["id"] != msg.id:
            printed["id"], printed["len"] = msg.id, 0
        sys.stdout.write(msg.content[printed["len"]:])
        sys.stdout.flush()
        printed["len"] = len(msg.content)

    chat = ChatSession(SqlConversationStore(), RelayClient(), auth, on_update=on_update)
    try:
        auth.sign_in(email, password)
    except AuthError as e:
        print(f"❌ {e.message}")
        return
    if chat.current_conversation is None:
        chat.create_conversation()

    seen = 0
    try:
        while True:
            line = input("\nyou> ").strip()
            if line in ("/quit", "/exit"):
                break
            if line == "/new":
                chat.create_conversation()
                continue
            if line == "/list":
                for c in chat.conversations:
                    mark = "*" if c.id == chat.current_conversation else " "
                    print(f"{mark} {c.id:>4}  {c.title}{'  [public]' if c.is_public else ''}")
                continue
            if line.startswith("/use "):
                chat.select_conversation(int(line.split()[1]))
                for m in chat.messages:
                    print(f"{m.role}> {m.content}")
                continue
            if line == "/share":
                conv = next(c for c in chat.conversations if c.id == chat.current_conversation)
                url = chat.toggle_share(conv)
                print(url or "sharing disabled")
                continue
            if line == "/delete" and chat.current_conversation is not None:
                chat.delete_conversation(chat.current_conversation)
                continue

            sys.stdout.write("mememind> ")
            try:
                chat.send_message(line)
            except TurnRejected as e:
                print(e.message)
            for n in chat.notices[seen:]:
                print(f"\n[{n.title}] {n.description}")
            seen = len(chat.notices)
    except (EOFError, KeyboardInterrupt):
        pass
    finally:
        chat.close()
        auth.sign_out()


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(2)
    main(sys.argv[1], sys.argv[2])
