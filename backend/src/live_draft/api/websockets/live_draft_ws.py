"""WebSocket handler for live draft sessions."""

import asyncio
import json
import logging
from typing import Optional

from fastapi import WebSocket, WebSocketDisconnect

from live_draft.errors import LiveDraftError
from live_draft.models.draft import TeamSide
from live_draft.services.event_hub import Subscription
from live_draft.services.live_draft_service import LiveDraftService

logger = logging.getLogger(__name__)


async def _handle_client_messages(
    websocket: WebSocket,
    service: LiveDraftService,
    session_id: str,
    subscription: Subscription,
    participant_id: Optional[str],
) -> None:
    """Listen for hover, chat and ping messages from the client."""
    try:
        while True:
            data = await websocket.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Invalid JSON received: {data[:200]}")
                continue
            if not isinstance(msg, dict):
                logger.warning(f"Ignoring non-object message on session {session_id}")
                continue

            msg_type = msg.get("type")
            try:
                if msg_type == "ping":
                    await websocket.send_json({"type": "pong"})

                elif msg_type == "champion_hovered":
                    service.hover(
                        msg["gameId"],
                        TeamSide(msg["team"]),
                        msg.get("championId"),
                        exclude=subscription.id,
                    )

                elif msg_type == "chat_message":
                    service.send_message(
                        session_id,
                        msg.get("displayName") or "Anonymous",
                        msg.get("content", ""),
                        user_id=msg.get("userId"),
                    )

                else:
                    logger.warning(f"Unknown message type on session {session_id}: {msg_type}")

            except LiveDraftError as e:
                await websocket.send_json({"type": "error", "message": e.message})
            except (KeyError, ValueError) as e:
                logger.warning(f"Malformed {msg_type} message on session {session_id}: {e}")

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"Error in client message handler: {e}")
    finally:
        if participant_id:
            try:
                service.update_connection(participant_id, False)
            except LiveDraftError:
                pass


async def live_draft_websocket(
    websocket: WebSocket,
    session_id: str,
    service: LiveDraftService,
    participant_id: Optional[str] = None,
):
    """Stream a session's realtime events to one client.

    Sends a full snapshot first, then every event published on the session,
    and accepts inbound hover/chat/ping frames.

    Args:
        websocket: The WebSocket connection
        session_id: Live draft session to follow
        service: LiveDraftService instance
        participant_id: Optional participant whose presence tracks this socket
    """
    try:
        snapshot = service.get_snapshot(session_id)
    except LiveDraftError:
        await websocket.close(code=4004, reason="Session not found")
        return

    await websocket.accept()
    subscription = service.hub.subscribe(session_id)

    if participant_id:
        try:
            service.update_connection(participant_id, True)
        except LiveDraftError:
            participant_id = None

    client_handler_task = asyncio.create_task(
        _handle_client_messages(websocket, service, session_id, subscription, participant_id)
    )

    try:
        await websocket.send_json({"type": "snapshot", **_jsonable(snapshot)})

        while not client_handler_task.done():
            get_event = asyncio.create_task(subscription.queue.get())
            done, _ = await asyncio.wait(
                {get_event, client_handler_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if get_event not in done:
                get_event.cancel()
                break
            event = get_event.result()
            await websocket.send_json(event.to_payload())

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"Live draft socket for session {session_id} failed: {e}")
        try:
            await websocket.send_json({"type": "error", "message": str(e)})
        except Exception:
            pass
    finally:
        service.hub.unsubscribe(subscription)
        if not client_handler_task.done():
            client_handler_task.cancel()
            try:
                await client_handler_task
            except asyncio.CancelledError:
                pass


def _jsonable(snapshot: dict) -> dict:
    """Snapshot values are already plain; ``remaining`` is rounded for the wire."""
    remaining = snapshot.get("remaining")
    if remaining is not None:
        snapshot = {**snapshot, "remaining": max(0, int(remaining + 0.999))}
    return snapshot
