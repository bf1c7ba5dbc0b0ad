"""
Chat Application UI

Main application class for the chat client terminal UI.
Built using the Textual framework.
"""

import asyncio
import logging
from typing import List, Optional

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, ScrollableContainer, Vertical
from textual.css.query import NoMatches
from textual.widgets import Button, DataTable, Footer, Header, Input, Label, Static

from ..chat_client import ChatClient
from ..schemas import ChatMessage, RoomInfo
from ..service import RequestError

logger = logging.getLogger(__name__)

# Error codes shown with a friendlier message
ERROR_MESSAGES = {
    "ROOM_SUSPENDED": "This room is suspended; messages cannot be sent.",
    "ROOM_NOT_FOUND": "This room no longer exists.",
}


class MessageDisplay(Static):
    """Widget for displaying a single chat message."""

    def __init__(
        self,
        nickname: str,
        message_text: str,
        timestamp: str,
        is_own_message: bool = False,
    ) -> None:
        """Initialize message display."""
        super().__init__()
        self.msg_nickname = nickname
        self.msg_text = message_text
        self.msg_timestamp = timestamp
        self.is_own_message = is_own_message

    def compose(self) -> ComposeResult:
        """Compose the message display."""
        time_part = (
            self.msg_timestamp.split("T")[1][:8]
            if "T" in self.msg_timestamp
            else ""
        )
        prefix = "You" if self.is_own_message else self.msg_nickname
        yield Static(
            f"[bold cyan]{escape(prefix)}[/] [dim]{time_part}[/]\n{escape(self.msg_text)}",
            classes="message-content",
        )


class SystemMessage(Static):
    """Widget for displaying system messages and notifications."""

    def __init__(self, message: str, message_type: str = "info") -> None:
        """Initialize system message display."""
        self.message = message
        self.message_type = message_type
        super().__init__()

    def compose(self) -> ComposeResult:
        """Compose the system message."""
        color = {
            "info": "blue",
            "warning": "yellow",
            "error": "red",
            "success": "green",
        }.get(self.message_type, "white")
        yield Static(f"[{color}]⚡ {escape(self.message)}[/]", classes="system-message")


class ConnectionScreen(Container):
    """Screen for connecting to the chat server."""

    def compose(self) -> ComposeResult:
        """Compose the connection screen."""
        yield Static(
            "[bold blue]Room Chat[/]",
            id="title",
            classes="screen-title",
        )
        yield Static("Enter your details to connect:", classes="subtitle")
        with Vertical(id="connection-form"):
            yield Label("Nickname:")
            yield Input(placeholder="Enter your nickname...", id="nickname-input")
            yield Label("Server Address:")
            yield Input(
                placeholder="host:port (e.g., localhost:8080)",
                id="server-address-input",
            )
            yield Button("Connect", id="connect-btn", variant="primary")
        yield Static("", id="connection-status", classes="status-message")


class RoomListScreen(Container):
    """Screen for choosing a room."""

    def compose(self) -> ComposeResult:
        """Compose the room list screen."""
        yield Static(
            "[bold blue]Rooms[/]",
            id="rooms-title",
            classes="screen-title",
        )
        with Horizontal(id="room-actions"):
            yield Input(placeholder="Room code", id="room-code-input")
            yield Input(placeholder="Name (new rooms)", id="room-name-input")
            yield Button("Join", id="join-btn", variant="primary")
            yield Button("Refresh", id="refresh-btn", variant="default")
            yield Button("Disconnect", id="disconnect-btn", variant="warning")
        yield DataTable(id="room-table")
        yield Static("", id="room-status", classes="status-message")


class ChatScreen(Container):
    """Screen for chatting in a room."""

    def compose(self) -> ComposeResult:
        """Compose the chat screen."""
        with Vertical(id="chat-main"):
            yield Static("", id="room-header", classes="room-header")
            yield ScrollableContainer(id="messages-container")
            with Horizontal(id="message-input-row"):
                yield Input(
                    placeholder="Type a message (max 200 characters)...",
                    id="message-input",
                    max_length=200,
                )
                yield Button("Send", id="send-btn", variant="primary")
                yield Button("Leave", id="leave-room-btn", variant="warning")


class ChatApp(App):
    """Main chat application."""

    CSS = """
    Screen {
        layout: vertical;
    }

    .screen-title {
        text-align: center;
        padding: 1 0;
        text-style: bold;
    }

    .subtitle {
        text-align: center;
        padding: 0 0 1 0;
    }

    #connection-form {
        align: center middle;
        padding: 2;
        width: 60;
        height: auto;
    }

    #connection-form Input {
        margin: 0 0 1 0;
    }

    #connection-form Button {
        margin: 1 0 0 0;
        width: 100%;
    }

    .status-message {
        text-align: center;
        padding: 1;
    }

    ConnectionScreen {
        align: center middle;
    }

    RoomListScreen {
        padding: 1;
    }

    #room-actions {
        height: 3;
        padding: 0 0 1 0;
    }

    #room-actions Input {
        width: 1fr;
    }

    #room-actions Button {
        margin: 0 0 0 1;
    }

    #room-table {
        height: 1fr;
    }

    ChatScreen {
        height: 100%;
    }

    #chat-main {
        height: 100%;
    }

    .room-header {
        padding: 1;
        background: $surface;
        text-align: center;
    }

    #messages-container {
        height: 1fr;
        padding: 1;
    }

    #message-input-row {
        height: 3;
        padding: 0 1;
    }

    #message-input {
        width: 1fr;
    }

    #message-input-row Button {
        margin: 0 0 0 1;
    }

    MessageDisplay {
        padding: 0 0 1 0;
    }

    .message-content {
        padding: 0 1;
    }

    .own-message .message-content {
        text-align: right;
    }

    SystemMessage {
        padding: 0 0 1 0;
    }

    .system-message {
        text-align: center;
        text-style: italic;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", show=True),
        Binding("escape", "go_back", "Back", show=True),
        Binding("r", "refresh_rooms", "Refresh", show=False),
    ]

    def __init__(self, server_address: Optional[str] = None) -> None:
        """Initialize the chat application."""
        super().__init__()
        self.client: Optional[ChatClient] = None
        self.nickname: Optional[str] = None
        self.server_address = server_address
        self._current_screen = "connection"
        self._poll_task: Optional[asyncio.Task] = None

    def compose(self) -> ComposeResult:
        """Compose the main application layout."""
        yield Header()
        yield ConnectionScreen(id="connection-screen")
        yield RoomListScreen(id="room-list-screen")
        yield ChatScreen(id="chat-screen")
        yield Footer()

    def on_mount(self) -> None:
        """Handle application mount."""
        if self.server_address:
            self.query_one("#server-address-input", Input).value = self.server_address
        self._show_screen("connection")

    def _show_screen(self, screen_name: str) -> None:
        """Show a specific screen and hide others."""
        screens = {
            "connection": "connection-screen",
            "room-list": "room-list-screen",
            "chat": "chat-screen",
        }

        for name, screen_id in screens.items():
            try:
                screen = self.query_one(f"#{screen_id}")
                screen.display = name == screen_name
            except NoMatches:
                pass

        self._current_screen = screen_name

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button press events."""
        button_id = event.button.id

        if button_id == "connect-btn":
            await self._handle_connect()
        elif button_id == "disconnect-btn":
            await self._handle_disconnect()
        elif button_id == "refresh-btn":
            await self._refresh_rooms()
        elif button_id == "join-btn":
            await self._handle_join_from_input()
        elif button_id == "send-btn":
            await self._handle_send_message()
        elif button_id == "leave-room-btn":
            await self._handle_leave_room()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        """Handle input submit events (Enter key)."""
        input_id = event.input.id

        if input_id == "message-input":
            await self._handle_send_message()
        elif input_id in ("nickname-input", "server-address-input"):
            await self._handle_connect()
        elif input_id in ("room-code-input", "room-name-input"):
            await self._handle_join_from_input()

    async def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        """Handle room selection from table."""
        if event.row_key:
            await self._handle_join_room(str(event.row_key.value))

    async def _handle_connect(self) -> None:
        """Handle connection to the server."""
        status = self.query_one("#connection-status", Static)
        try:
            nickname = self.query_one("#nickname-input", Input).value.strip()
            address = self.query_one("#server-address-input", Input).value.strip()

            if not nickname:
                status.update("[red]Please enter a nickname[/]")
                return
            if not address:
                status.update("[red]Please enter a server address[/]")
                return

            status.update("[yellow]Connecting...[/]")

            ws_url = address if "://" in address else f"ws://{address}"

            self.client = ChatClient(ws_url)
            self.client.set_nickname(nickname)
            self.client.set_on_new_messages(self._on_new_messages)
            self.client.set_on_room_updated(self._on_room_updated)
            self.client.set_on_room_gone(self._on_room_gone)
            self.client.set_on_error(self._on_poll_error)

            await self.client.connect()
            self.nickname = nickname

            status.update("[green]Connected![/]")
            self._show_screen("room-list")
            await self._refresh_rooms()

        except Exception as e:
            logger.error("Connection failed: %s", e)
            status.update(f"[red]Connection failed: {e}[/]")

    async def _handle_disconnect(self) -> None:
        """Handle disconnection from the server."""
        await self._stop_polling()

        if self.client:
            await self.client.disconnect()
            self.client = None

        self.nickname = None
        self._show_screen("connection")
        self.query_one("#connection-status", Static).update("[yellow]Disconnected[/]")

    async def _refresh_rooms(self) -> None:
        """Refresh the room list."""
        if not self.client or not self.client.is_connected:
            return

        status = self.query_one("#room-status", Static)
        table = self.query_one("#room-table", DataTable)

        try:
            status.update("[yellow]Loading rooms...[/]")
            response = await self.client.list_rooms()

            table.clear(columns=True)
            table.add_columns("Code", "Name", "Messages", "Last Activity", "Status")
            table.cursor_type = "row"

            for room in response.rooms:
                table.add_row(
                    room.code,
                    room.name or "-",
                    str(room.message_count),
                    (room.last_message_at or room.created_at or "")[:19],
                    "suspended" if room.suspended else "open",
                    key=room.code,
                )

            if response.rooms:
                status.update(
                    f"[green]Found {response.total_count} room(s). "
                    f"Select a row or enter a code to join.[/]"
                )
            else:
                status.update("[yellow]No rooms yet. Enter a code to create one![/]")

        except Exception as e:
            logger.error("Failed to refresh rooms: %s", e)
            status.update(f"[red]Error: {e}[/]")

    async def _handle_join_from_input(self) -> None:
        code_input = self.query_one("#room-code-input", Input)
        name_input = self.query_one("#room-name-input", Input)
        room_code = code_input.value.strip()
        if not room_code:
            self.query_one("#room-status", Static).update(
                "[red]Please enter a room code[/]"
            )
            return
        await self._handle_join_room(room_code, name_input.value.strip() or None)
        code_input.value = ""
        name_input.value = ""

    async def _handle_join_room(self, room_code: str, name: Optional[str] = None) -> None:
        """Handle joining (or creating) a room."""
        if not self.client or not self.client.is_connected:
            return

        status = self.query_one("#room-status", Static)
        messages = self.query_one("#messages-container", ScrollableContainer)
        await messages.remove_children()

        try:
            status.update("[yellow]Joining room...[/]")
            self._show_screen("chat")
            info = await self.client.enter_room(room_code, name)
            self._update_chat_screen(info)
            self._start_polling()
        except RequestError as e:
            logger.error("Failed to join room: %s", e)
            self._show_screen("room-list")
            status.update(f"[red]Failed to join: {e.message}[/]")
        except Exception as e:
            logger.error("Failed to join room: %s", e)
            self._show_screen("room-list")
            status.update(f"[red]Error: {e}[/]")

    async def _handle_leave_room(self) -> None:
        """Handle leaving the current room."""
        await self._stop_polling()
        if self.client:
            self.client.leave_room()

        messages = self.query_one("#messages-container", ScrollableContainer)
        await messages.remove_children()

        self._show_screen("room-list")
        await self._refresh_rooms()

    async def _handle_send_message(self) -> None:
        """Handle sending a message."""
        if not self.client or not self.client.room_code:
            return

        message_input = self.query_one("#message-input", Input)
        text = message_input.value.strip()
        if not text:
            return

        try:
            await self.client.post(text)
            message_input.value = ""
        except RequestError as e:
            logger.error("Failed to send message: %s", e)
            self._add_system_message(ERROR_MESSAGES.get(e.error_code, e.message), "error")
        except Exception as e:
            logger.error("Failed to send message: %s", e)
            self._add_system_message(f"Failed to send message: {e}", "error")

    def _update_chat_screen(self, info: RoomInfo) -> None:
        """Update the chat screen header with current room info."""
        try:
            header = self.query_one("#room-header", Static)
            state = " [red](suspended)[/]" if info.suspended else ""
            header.update(
                f"[bold]Room: {info.display_name}[/] [dim]{info.code}[/]{state} "
                f"| You: {self.nickname}"
            )
        except NoMatches:
            pass

    def _start_polling(self) -> None:
        """Start the background task polling for messages."""
        if self._poll_task:
            self._poll_task.cancel()

        async def poll_loop():
            try:
                if self.client:
                    await self.client.run_polling()
            except asyncio.CancelledError:
                pass
            except Exception as err:
                logger.error("Polling error: %s", err)
                self._add_system_message(f"Connection lost: {err}", "error")

        self._poll_task = asyncio.create_task(poll_loop())

    async def _stop_polling(self) -> None:
        if self._poll_task:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None

    def _on_new_messages(self, messages: List[ChatMessage]) -> None:
        """Callback when new messages arrive."""
        for message in messages:
            self._add_chat_message(message)

    def _on_room_updated(self, info: RoomInfo) -> None:
        self._update_chat_screen(info)

    def _on_room_gone(self, room_code: str) -> None:
        """Callback when the current room was deleted."""
        self._add_system_message(f"Room {room_code} has been deleted", "warning")
        self.call_later(self._return_to_room_list)

    def _on_poll_error(self, error: Exception) -> None:
        self._add_system_message(f"Error: {error}", "error")

    async def _return_to_room_list(self) -> None:
        self._show_screen("room-list")
        await self._refresh_rooms()

    def _add_chat_message(self, message: ChatMessage) -> None:
        """Add a chat message to the display."""
        if message.is_system:
            self._add_system_message(message.text, "info")
            return
        try:
            messages = self.query_one("#messages-container", ScrollableContainer)
            is_own = message.nickname == self.nickname
            msg_widget = MessageDisplay(
                nickname=message.nickname,
                message_text=message.text,
                timestamp=message.created_at,
                is_own_message=is_own,
            )
            if is_own:
                msg_widget.add_class("own-message")
            messages.mount(msg_widget)
            messages.scroll_end()
        except NoMatches:
            pass

    def _add_system_message(self, message: str, message_type: str = "info") -> None:
        """Add a system message to the display."""
        try:
            messages = self.query_one("#messages-container", ScrollableContainer)
            messages.mount(SystemMessage(message, message_type))
            messages.scroll_end()
        except NoMatches:
            pass

    def action_go_back(self) -> None:
        """Handle back action."""
        if self._current_screen == "chat":
            asyncio.create_task(self._handle_leave_room())
        elif self._current_screen == "room-list":
            asyncio.create_task(self._handle_disconnect())

    def action_refresh_rooms(self) -> None:
        """Handle refresh rooms action."""
        if self._current_screen == "room-list":
            asyncio.create_task(self._refresh_rooms())
