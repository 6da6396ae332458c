"""
MCP Interface Layer using fastmcp, exposing the session operations to a presentation client.
"""
from typing import Any, Dict, Optional

from fastmcp import FastMCP

from simchat.services.session_manager import SessionManager
from simchat.utils.config import config
from simchat.utils.health_check import get_health_status
from simchat.utils.logging_config import get_logger

logger = get_logger(__name__)

# Initialize FastMCP application
mcp = FastMCP('SimChat')
session = SessionManager.from_config()
session.start()


@mcp.tool()
def sign_up(name: str, password: str) -> Dict[str, Any]:
    """Create an account and sign in to it.

    Args:
        name: Display name, unique ignoring case
        password: Account password

    Returns:
        Result dict; on success value is the new account, with its 8-digit UID in value.uid
    """
    return session.sign_up(name, password).to_dict()


@mcp.tool()
def log_in(uid: str, password: str) -> Dict[str, Any]:
    """Sign in to an existing account.

    Args:
        uid: 8-digit account UID
        password: Account password

    Returns:
        Result dict with the account as value, or an AuthError
    """
    return session.log_in(uid, password).to_dict()


@mcp.tool()
def log_out() -> Dict[str, Any]:
    """Sign out of the current account and forget the saved session.

    Returns:
        {'success': True}
    """
    session.log_out()
    return {'success': True}


@mcp.tool()
def current_account() -> Dict[str, Any]:
    """Return the signed-in account, refreshed from the directory.

    Returns:
        Result dict with the account (including contacts added by others) as value
    """
    result = session.refresh()
    return result.to_dict()


@mcp.tool()
def link_contact(uid: str, name: str) -> Dict[str, Any]:
    """Add a contact by UID and open a conversation with it.

    The link is symmetric: the other account gets the current user as a contact too.

    Args:
        uid: 8-digit UID of the account to add
        name: Name to show for the contact

    Returns:
        Result dict with the opened conversation as value
    """
    return session.link_contact(uid, name).to_dict()


@mcp.tool()
def list_conversations() -> Dict[str, Any]:
    """List the current account's conversations.

    Returns:
        Result dict with a list of conversations, each with its messages
    """
    return session.list_conversations().to_dict()


@mcp.tool()
def send_text(recipient_uid: str, text: str) -> Dict[str, Any]:
    """Send a text message.

    Args:
        recipient_uid: 8-digit UID of the recipient
        text: Message text, must not be blank

    Returns:
        Result dict with a delivery receipt as value. recipient_written is False
        when only the sender's copy was stored
    """
    return session.send_text(recipient_uid, text).to_dict()


@mcp.tool()
async def send_file(recipient_uid: str, path: str, mime_type: Optional[str] = None) -> Dict[str, Any]:
    """Send a local file as an image, video, audio or document message.

    Args:
        recipient_uid: 8-digit UID of the recipient
        path: Path of the file to send
        mime_type: MIME type, guessed from the file name if omitted

    Returns:
        Result dict with a delivery receipt as value
    """
    result = await session.send_file(recipient_uid, path, mime_type=mime_type)
    return result.to_dict()


@mcp.tool()
def update_name(name: str) -> Dict[str, Any]:
    """Rename the current account.

    Args:
        name: New display name, unique ignoring case

    Returns:
        Result dict with the updated account as value
    """
    return session.update_name(name).to_dict()


@mcp.tool()
def update_avatar(avatar_url: str) -> Dict[str, Any]:
    """Replace the current account's avatar.

    Args:
        avatar_url: Image URL or data URI

    Returns:
        Result dict with the updated account as value
    """
    return session.update_avatar(avatar_url).to_dict()


@mcp.tool()
def post_story(image_url: str) -> Dict[str, Any]:
    """Post a story image for the current account.

    Args:
        image_url: Image URL or data URI

    Returns:
        Result dict with the new story as value, or a LimitError at 15 active stories
    """
    return session.post_story(image_url).to_dict()


@mcp.tool()
def list_story_feed() -> Dict[str, Any]:
    """List active stories of other accounts.

    Returns:
        Result dict mapping owner UID to that owner's stories, newest first
    """
    return session.list_story_feed().to_dict()


@mcp.tool()
def list_owner_stories(owner_uid: str) -> Dict[str, Any]:
    """List one owner's active stories in playback order.

    Args:
        owner_uid: 8-digit UID of the story owner

    Returns:
        Result dict with the stories, oldest first
    """
    return session.list_owner_stories(owner_uid).to_dict()


@mcp.tool()
def suggest_reply(counterpart_uid: str, text: str) -> Dict[str, Any]:
    """Ask the automated reply service to answer text in a conversation.

    Args:
        counterpart_uid: 8-digit UID of the other participant
        text: Message to answer

    Returns:
        Result dict with the reply text, or a ValidationError if replies are disabled
    """
    return session.suggest_reply(counterpart_uid, text).to_dict()


@mcp.tool()
def health() -> Dict[str, Any]:
    """Report partition store and Bedrock status.

    Returns:
        Dict with a per-service healthy flag
    """
    return get_health_status(session.store)


if __name__ == '__main__':
    logger.info(f'Starting SimChat MCP server ({config.mcp.transport})')
    mcp.run(transport=config.mcp.transport, host=config.mcp.host, port=config.mcp.port)
