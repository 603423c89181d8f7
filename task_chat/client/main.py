"""Console client for the task chat application."""
import sys
from typing import Dict, Optional

from . import api
from .chat import ChatClient
from .models import InboxMessage, User
from .storage import clear_auth, get_server_url, get_token, get_user, store_auth, store_server_url
from ..shared.dto import ChatMessage
from ..shared.utils import is_password_strong


class ConsoleClient:
    """Interactive console client for the inbox and the live chat."""

    def __init__(self, server_url: str):
        self.server_url = server_url
        self.api = api.APIClient(server_url)
        self.current_user = get_user()
        self.chat: Optional[ChatClient] = None

    def register(self) -> None:
        print("=== Register ===")
        username = input("Username: ").strip()
        email = input("Email: ").strip()
        password = input("Password (min 6 chars): ").strip()

        if not is_password_strong(password):
            print("Password too weak or blacklisted.")
            return
        try:
            response = self.api.register(username, email, password)
        except Exception as exc:  # noqa: BLE001
            print(f"Registration failed: {exc}")
            return
        store_auth(response["token"], response["user"])
        self.current_user = response["user"]
        print(f"Welcome, {self.current_user['username']}!")

    def login(self) -> bool:
        print("=== Login ===")
        email = input("Email: ").strip()
        password = input("Password: ").strip()
        try:
            response = self.api.login(email, password)
        except Exception as exc:  # noqa: BLE001
            print(f"Login failed: {exc}")
            return False

        store_auth(response["token"], response["user"])
        self.current_user = response["user"]
        print(f"Welcome, {self.current_user['username']}!")
        return True

    def list_users(self) -> Dict[int, User]:
        try:
            users_raw = self.api.list_users()
        except Exception as exc:  # noqa: BLE001
            print(f"Could not fetch users: {exc}")
            return {}
        users = {u["id"]: User(**u) for u in users_raw}
        online = set(self.chat.online_users) if self.chat else set()
        for u in users.values():
            marker = " *" if str(u.id) in online else ""
            print(f"- {u.id}: {u.username} ({u.email}){marker}")
        return users

    def _pick_peer(self) -> Optional[User]:
        users = self.list_users()
        username = input("Enter recipient username: ").strip()
        peer = next((u for u in users.values() if u.username == username), None)
        if not peer:
            print("User not found.")
        return peer

    def inbox(self) -> None:
        peer = self._pick_peer()
        if not peer:
            return
        while True:
            print("\nInbox commands: [s]end, [r]efresh, [b]ack")
            cmd = input("> ").strip().lower()
            if cmd == "b":
                break
            if cmd == "s":
                text = input("Message: ")
                try:
                    self.api.send_message(peer.id, text)
                    print("Message sent.")
                except Exception as exc:  # noqa: BLE001
                    print(f"Failed to send message: {exc}")
            if cmd == "r":
                self._print_conversation(peer)

    def _print_conversation(self, peer: User) -> None:
        try:
            messages = [InboxMessage.from_json(m) for m in self.api.get_messages(peer.id)]
        except Exception as exc:  # noqa: BLE001
            print(f"Could not fetch messages: {exc}")
            return
        for msg in messages:
            direction = "(you)" if msg.sender_id == self.current_user["id"] else peer.username
            edited = " (edited)" if msg.edited else ""
            print(f"[{msg.created_at:%H:%M}] {direction}: {msg.content}{edited}")
        if not messages:
            print("No messages yet.")

    def live_chat(self) -> None:
        if not self.chat:
            self.chat = ChatClient(self.server_url, on_message=self._print_live_message)
            try:
                self.chat.connect(str(self.current_user["id"]), token=get_token())
            except Exception as exc:  # noqa: BLE001
                print(f"Could not connect to live chat: {exc}")
                self.chat = None
                return
        peer = self._pick_peer()
        if not peer:
            return
        print("Type messages, empty line to go back.")
        while True:
            text = input()
            if not text:
                break
            try:
                self.chat.send_message(str(peer.id), text)
            except Exception as exc:  # noqa: BLE001
                print(f"Live chat connection lost: {exc}")
                self.chat = None
                return

    def _print_live_message(self, message: ChatMessage) -> None:
        direction = "(you)" if message.sender_id == str(self.current_user["id"]) else message.sender_id
        print(f"[{message.created_at[11:16]}] {direction}: {message.content}")

    def logout(self) -> None:
        if self.chat:
            self.chat.disconnect()
            self.chat = None
        try:
            self.api.logout()
        except Exception as exc:  # noqa: BLE001
            print(f"Server logout failed: {exc}")
        clear_auth()
        self.current_user = None
        print("Logged out.")


def main():
    print("Task Chat Client")
    server_url = get_server_url() or input("Server URL (e.g. http://127.0.0.1:3001): ").strip()
    store_server_url(server_url)
    client = ConsoleClient(server_url)

    while True:
        print("\nMenu: [r]egister, [l]ogin, [q]uit")
        choice = input("> ").strip().lower()
        if choice == "q":
            sys.exit(0)
        if choice == "r":
            client.register()
        if choice == "l":
            client.login()
        while get_token() and client.current_user:
            print("\nUser menu: [u]sers, [i]nbox, [c]hat, [o]logout")
            sub = input("> ").strip().lower()
            if sub == "o":
                client.logout()
                break
            if sub == "u":
                client.list_users()
            if sub == "i":
                client.inbox()
            if sub == "c":
                client.live_chat()


if __name__ == "__main__":
    main()
