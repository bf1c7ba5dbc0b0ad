"""
Tests for the Chat Client UI

Tests for the Textual-based user interface components.
"""

from chat_client.ui.app import (
    ERROR_MESSAGES,
    ChatApp,
    ChatScreen,
    ConnectionScreen,
    MessageDisplay,
    RoomListScreen,
    SystemMessage,
)


class TestUIComponentsCanBeImported:
    """Tests to verify UI components can be imported and created."""

    def test_screens_can_be_imported(self):
        assert ConnectionScreen is not None
        assert RoomListScreen is not None
        assert ChatScreen is not None

    def test_widgets_can_be_imported(self):
        assert MessageDisplay is not None
        assert SystemMessage is not None


class TestChatAppInitialization:
    """Tests for ChatApp initialization."""

    def test_chat_app_initial_state(self):
        """Test ChatApp initial state."""
        app = ChatApp()
        assert app.client is None
        assert app.nickname is None
        assert app.server_address is None
        assert app._current_screen == "connection"
        assert app._poll_task is None

    def test_chat_app_keeps_server_address(self):
        app = ChatApp(server_address="localhost:9000")
        assert app.server_address == "localhost:9000"

    def test_chat_app_has_bindings_and_css(self):
        app = ChatApp()
        assert len(app.BINDINGS) > 0
        assert len(app.CSS) > 0

    def test_error_messages_cover_send_failures(self):
        assert "ROOM_SUSPENDED" in ERROR_MESSAGES
        assert "ROOM_NOT_FOUND" in ERROR_MESSAGES


class TestMessageDisplayWidget:
    """Tests for MessageDisplay widget."""

    def test_message_display_stores_data(self):
        msg = MessageDisplay(
            nickname="alice",
            message_text="Hello, [bold]World[/]!",
            timestamp="2025-11-25T12:00:00.000000+00:00",
        )
        assert msg.msg_nickname == "alice"
        assert msg.msg_text == "Hello, [bold]World[/]!"
        assert msg.msg_timestamp == "2025-11-25T12:00:00.000000+00:00"
        assert msg.is_own_message is False

    def test_message_display_own_message(self):
        msg = MessageDisplay(
            nickname="me",
            message_text="My message",
            timestamp="2025-11-25T12:00:00.000000+00:00",
            is_own_message=True,
        )
        assert msg.is_own_message is True


class TestSystemMessageWidget:
    """Tests for SystemMessage widget."""

    def test_system_message_default_type(self):
        msg = SystemMessage(message="This room has been suspended")
        assert msg.message == "This room has been suspended"
        assert msg.message_type == "info"

    def test_system_message_error_type(self):
        msg = SystemMessage(message="Error occurred", message_type="error")
        assert msg.message_type == "error"


def test_ui_package_exports_chat_app():
    from chat_client.ui import ChatApp as ImportedChatApp

    assert ImportedChatApp is ChatApp
