"""Building Slack modals from configuration and parsing their submissions."""

from __future__ import annotations

from typing import Annotated, Any, Dict, Iterable, List, Literal, Union

import structlog
from pydantic import BaseModel, Discriminator, Field, Tag, ValidationError
from slack_sdk.errors import SlackClientError

from .config import ModalInput
from .errors import bad_request, internal_error
from .slack_client import ChatClient

DEFAULT_CALLBACK_ID = "default_modal"
STATIC_SELECT = "static_select"
PLAIN_TEXT_INPUT = "plain_text_input"

MAX_TITLE_LENGTH = 24
MAX_LABEL_LENGTH = 2000

logger = structlog.get_logger(__name__)


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "..."


def _plain_text(text: str) -> Dict[str, Any]:
    return {"type": "plain_text", "text": text, "emoji": True}


class Modal:
    """A Slack modal view plus the trigger id allowed to open it."""

    def __init__(self, title: str, trigger_id: str, *, callback_id: str = DEFAULT_CALLBACK_ID) -> None:
        self.trigger_id = trigger_id
        self.view: Dict[str, Any] = {
            "type": "modal",
            "callback_id": callback_id,
            "title": _plain_text(_truncate(title, MAX_TITLE_LENGTH)),
            "submit": _plain_text("Submit"),
            "close": _plain_text("Cancel"),
            "blocks": [],
        }

    @property
    def blocks(self) -> List[Dict[str, Any]]:
        return self.view["blocks"]

    def _add_input_block(self, block_id: str, label: str, element: Dict[str, Any], *, optional: bool) -> Modal:
        self.blocks.append(
            {
                "type": "input",
                "block_id": block_id,
                "label": _plain_text(_truncate(label, MAX_LABEL_LENGTH)),
                "element": element,
                "optional": optional,
            }
        )
        return self

    def add_text_input(
        self,
        block_id: str,
        label: str,
        placeholder: str = "",
        *,
        multiline: bool = False,
        optional: bool = False,
    ) -> Modal:
        element: Dict[str, Any] = {
            "type": PLAIN_TEXT_INPUT,
            "action_id": block_id,
            "multiline": multiline,
        }
        if placeholder:
            element["placeholder"] = _plain_text(placeholder)
        return self._add_input_block(block_id, label, element, optional=optional)

    def add_select_input(
        self,
        block_id: str,
        label: str,
        placeholder: str,
        options: Iterable[str],
        *,
        optional: bool = False,
    ) -> Modal:
        element: Dict[str, Any] = {
            "type": STATIC_SELECT,
            "action_id": block_id,
            "options": [{"text": _plain_text(option), "value": option} for option in options],
        }
        if placeholder:
            element["placeholder"] = _plain_text(placeholder)
        return self._add_input_block(block_id, label, element, optional=optional)

    def add_date_input(self, block_id: str, label: str, *, optional: bool = False) -> Modal:
        element = {"type": "datepicker", "action_id": block_id}
        return self._add_input_block(block_id, label, element, optional=optional)

    def send(self, client: ChatClient) -> None:
        """Open the modal in Slack using the stored trigger id."""

        try:
            client.open_view(trigger_id=self.trigger_id, view=self.view)
        except (SlackClientError, OSError) as exc:
            cause = RuntimeError(f"failed to send modal with trigger ID {self.trigger_id}: {exc}")
            cause.__cause__ = exc
            raise internal_error("Failed to send modal to Slack", cause) from exc


def build_modal(title: str, trigger_id: str, inputs: Iterable[ModalInput]) -> Modal:
    """Build a modal with one input block per supported field definition.

    ``text`` fields become plain text inputs and ``select`` fields become
    static selects whose option values equal their labels. Other field
    types are skipped.
    """

    modal = Modal(title, trigger_id)
    for field in inputs:
        optional = not field.required
        if field.type == "select":
            modal.add_select_input(
                field.key, field.label, field.placeholder, field.option_labels(), optional=optional
            )
        elif field.type == "text":
            modal.add_text_input(field.key, field.label, field.placeholder, optional=optional)
        else:
            logger.debug("modal_input_skipped", key=field.key, input_type=field.type)
    return modal


class SelectedOption(BaseModel):
    value: str = ""


class StaticSelectInput(BaseModel):
    type: Literal["static_select"] = STATIC_SELECT
    selected_option: SelectedOption | None = None

    def resolve(self) -> str:
        if self.selected_option is None:
            return ""
        return self.selected_option.value


class TextInput(BaseModel):
    type: str = PLAIN_TEXT_INPUT
    value: str | None = None

    def resolve(self) -> str:
        return self.value or ""


def _input_kind(raw: Any) -> str:
    kind = raw.get("type") if isinstance(raw, dict) else getattr(raw, "type", None)
    return STATIC_SELECT if kind == STATIC_SELECT else "text"


BlockInput = Annotated[
    Union[
        Annotated[StaticSelectInput, Tag(STATIC_SELECT)],
        Annotated[TextInput, Tag("text")],
    ],
    Discriminator(_input_kind),
]


class SubmissionUser(BaseModel):
    id: str = ""
    username: str = ""
    name: str = ""


class SubmissionState(BaseModel):
    values: Dict[str, Dict[str, BlockInput]] = Field(default_factory=dict)


class SubmissionView(BaseModel):
    id: str = ""
    callback_id: str = ""
    state: SubmissionState = Field(default_factory=SubmissionState)


class ModalSubmission(BaseModel):
    """The ``view_submission`` payload Slack posts when a modal is submitted."""

    user: SubmissionUser = Field(default_factory=SubmissionUser)
    view: SubmissionView = Field(default_factory=SubmissionView)

    @classmethod
    def parse(cls, payload: str | None) -> ModalSubmission:
        if not payload or not payload.strip():
            raise bad_request("Invalid payload format")
        try:
            return cls.model_validate_json(payload)
        except ValidationError as exc:
            raise bad_request("Invalid payload format", exc) from exc

    @property
    def username(self) -> str:
        return self.user.username or self.user.name

    def parse_field(self, block_id: str) -> str:
        for block_input in self.view.state.values.get(block_id, {}).values():
            return block_input.resolve()
        raise bad_request(f"Field {block_id} not found")

    def parse_all_fields(self) -> Dict[str, str]:
        fields: Dict[str, str] = {}
        for block_id, actions in self.view.state.values.items():
            for block_input in actions.values():
                fields[block_id] = block_input.resolve()
                break

        if not fields:
            raise bad_request("No fields found in modal")
        return fields
