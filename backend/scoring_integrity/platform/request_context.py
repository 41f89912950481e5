from contextvars import ContextVar
from typing import Optional

_evaluation_id_ctx: ContextVar[Optional[str]] = ContextVar("evaluation_id", default=None)


def set_evaluation_id(evaluation_id: str):
    return _evaluation_id_ctx.set(evaluation_id)


def reset_evaluation_id(token) -> None:
    _evaluation_id_ctx.reset(token)


def get_evaluation_id() -> Optional[str]:
    return _evaluation_id_ctx.get()
