#!/usr/bin/env python3
"""Interactive chat CLI for trying the console assistant against a running service."""

import json
import sys

import httpx
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt


class ChatCLI:
    """Interactive streaming chat with the console assistant."""

    def __init__(self, base_url: str = "http://localhost:8000", user_id: str = "user_pm", role: str = "PM"):
        """Initialize chat CLI."""
        self.base_url = base_url
        self.user_id = user_id
        self.role = role
        self.conversation_id: str | None = None
        self.console = Console()
        self.client = httpx.Client(timeout=120.0)

    def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold blue]Console AI - Interactive Chat[/bold blue]\n"
                f"Signed in as [bold]{self.user_id}[/bold] ({self.role}).\n"
                "Commands: /help, /new, /history, /quit",
                border_style="blue",
            )
        )

        if not self._test_connection():
            self.console.print(f"[red]Cannot connect to the service at {self.base_url}.[/red]")
            return

        self.console.print("[green]Connected to the console assistant[/green]\n")

        try:
            while True:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")

                if user_input.lower() in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif user_input.lower() == "/help":
                    self._show_help()
                    continue
                elif user_input.lower() == "/new":
                    self.conversation_id = None
                    self.console.print("[yellow]Started a new conversation[/yellow]")
                    continue
                elif user_input.lower() == "/history":
                    self._show_history()
                    continue
                elif user_input.strip() == "":
                    continue

                self._stream_message(user_input)

        except KeyboardInterrupt:
            pass
        finally:
            self.console.print("\n[yellow]Goodbye![/yellow]")
            self.client.close()

    def _test_connection(self) -> bool:
        """Test connection to the service."""
        try:
            response = self.client.get(f"{self.base_url}/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def _ensure_conversation(self) -> str | None:
        if self.conversation_id:
            return self.conversation_id
        response = self.client.post(f"{self.base_url}/conversations", json={"user_id": self.user_id})
        if response.status_code != 201:
            self.console.print(f"[red]API Error: {response.status_code} - {response.text}[/red]")
            return None
        self.conversation_id = response.json()["id"]
        return self.conversation_id

    def _stream_message(self, message: str) -> None:
        """Send a message and render the streamed events as they arrive."""
        try:
            conversation_id = self._ensure_conversation()
            if conversation_id is None:
                return

            payload = {"message": message, "user_id": self.user_id, "role": self.role}
            text_parts: list[str] = []
            suggestions: list[str] = []

            with self.client.stream(
                "POST", f"{self.base_url}/conversations/{conversation_id}/stream", json=payload
            ) as response:
                if response.status_code != 200:
                    response.read()
                    self.console.print(f"[red]API Error: {response.status_code} - {response.text}[/red]")
                    return

                for line in response.iter_lines():
                    if not line.startswith("data: "):
                        continue
                    event = json.loads(line[len("data: ") :])
                    kind, data = event.get("type"), event.get("data", {})

                    if kind == "text_delta":
                        text_parts.append(data["text"])
                        self.console.print(data["text"], end="", markup=False, highlight=False)
                    elif kind == "tool_use_start":
                        self.console.print(f"\n[dim]-> {data['name']}[/dim]")
                    elif kind == "tool_result":
                        color = "green" if data["status"] == "SUCCESS" else "red"
                        self.console.print(f"[dim]<- {data['name']}: [{color}]{data['status']}[/{color}][/dim]")
                    elif kind == "suggested_followups":
                        suggestions = data.get("suggestions", [])
                    elif kind == "error":
                        self.console.print(f"\n[red]{data.get('message')} ({data.get('code')})[/red]")
                    elif kind == "done":
                        break

            self.console.print()
            if text_parts:
                self._display_response("".join(text_parts))
            if suggestions:
                self.console.print("[dim]Try: " + " | ".join(suggestions) + "[/dim]")

        except httpx.HTTPError as e:
            self.console.print(f"[red]Connection error: {e}[/red]")

    def _display_response(self, text: str) -> None:
        """Display the final assistant text with nice formatting."""
        self.console.print(
            Panel(
                Markdown(text),
                title="[bold green]Assistant[/bold green]",
                border_style="green",
                padding=(1, 2),
            )
        )

    def _show_history(self) -> None:
        """Show the messages of the current conversation."""
        if not self.conversation_id:
            self.console.print("[yellow]No conversation yet[/yellow]")
            return
        response = self.client.get(
            f"{self.base_url}/conversations/{self.conversation_id}/messages", params={"user_id": self.user_id}
        )
        for message in response.json():
            if message["role"] == "TOOL_RESULT":
                self.console.print(f"[dim]  tool result for {message['tool_call_id']}[/dim]")
            else:
                self.console.print(f"[bold]{message['role']}[/bold]: {message['content']}")

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /new - Start a new conversation
• /history - Show the stored messages of this conversation
• /quit or /exit - Exit the chat

[bold]Example Requests:[/bold]
1. "What's on my plate today?"
2. "Create a high priority task to prepare the Q3 report, due Friday"
3. "Log 2 hours on that task"
4. "Show open urgent tickets"

[bold]Usage:[/bold]
chat_cli.py [base_url] [user_id] [role]
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the chat CLI."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"
    user_id = sys.argv[2] if len(sys.argv) > 2 else "user_pm"
    role = sys.argv[3] if len(sys.argv) > 3 else "PM"

    chat = ChatCLI(base_url, user_id, role)
    chat.start()


if __name__ == "__main__":
    main()
