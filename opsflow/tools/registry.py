import uuid
from typing import Any, Callable, Dict, List, Sequence, Union

_TOOLS: Dict[str, Callable] = {}
_MODELS: Dict[str, Union[Sequence[Dict[str, Any]], Callable[[], Sequence[Dict[str, Any]]]]] = {}

# Messages "sent" by the built-in notification actions
OUTBOX: List[Dict[str, Any]] = []


def register_tool(name: str):
    def _wrap(fn):
        _TOOLS[name] = fn
        return fn
    return _wrap


def get_tool(name: str) -> Callable:
    if name not in _TOOLS:
        raise ValueError(f"Tool not found: {name}")
    return _TOOLS[name]


def list_tools() -> List[str]:
    return sorted(_TOOLS)


def register_model(name: str, records):
    """
    Register the records a QUERY node can read: either a list of dicts or
    a zero-argument callable returning one.
    """
    _MODELS[name] = records


def get_model_records(name: str) -> List[Dict[str, Any]]:
    if name not in _MODELS:
        raise ValueError(f"Model not found: {name}")
    source = _MODELS[name]
    return list(source() if callable(source) else source)


def unregister_model(name: str) -> None:
    _MODELS.pop(name, None)


@register_tool("email.send")
def email_send(to: str, subject: str = "", body: str = "", **extra) -> Dict[str, Any]:
    """ Queue an email in the outbox. """
    if not to:
        raise ValueError("email.send requires a recipient")
    message = {"id": f"email-{uuid.uuid4().hex[:12]}", "channel": "email",
               "to": to, "subject": subject, "body": body, **extra}
    OUTBOX.append(message)
    return {"messageId": message["id"], "status": "sent"}


@register_tool("sms.send")
def sms_send(to: str, message: str = "", **extra) -> Dict[str, Any]:
    """ Queue a text message in the outbox. """
    if not to:
        raise ValueError("sms.send requires a phone number")
    entry = {"id": f"sms-{uuid.uuid4().hex[:12]}", "channel": "sms", "to": to, "message": message, **extra}
    OUTBOX.append(entry)
    return {"messageId": entry["id"], "status": "sent"}
