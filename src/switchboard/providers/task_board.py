"""Trello task board provider."""

from __future__ import annotations

from typing import Any

import structlog

from switchboard.config import TrelloConfig
from switchboard.gateway.models import ActionSpec, Provider, correlation_id
from switchboard.providers.base import ProviderHandler, nested

logger = structlog.get_logger()


class TaskBoardHandler(ProviderHandler):
    provider = Provider.TASK_BOARD
    label = "Trello API"

    def __init__(self, config: TrelloConfig, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.config = config

    @property
    def configured(self) -> bool:
        return bool(self.config.api_key and self.config.token)

    def action_table(self) -> list[ActionSpec]:
        return [
            ActionSpec("createBoard", self.create_board, ("data",)),
            ActionSpec("createList", self.create_list, ("boardId", "data")),
            ActionSpec("createCard", self.create_card, ("listId", "data")),
            ActionSpec("updateCard", self.update_card, ("cardId", "data")),
            ActionSpec("addComment", self.add_comment, ("cardId", "data")),
            ActionSpec("getBoards", self.get_boards),
            ActionSpec("getBoardLists", self.get_board_lists, ("boardId",)),
            ActionSpec("getListCards", self.get_list_cards, ("listId",)),
        ]

    async def _call(self, method: str, path: str, error_prefix: str, **kwargs: Any) -> Any:
        self.require_credentials()
        return await self._request_json(
            method,
            f"{self.config.base_url}{path}",
            error_prefix=error_prefix,
            params={"key": self.config.api_key, "token": self.config.token},
            **kwargs,
        )

    async def create_board(self, agent_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        data = nested(payload, "data")
        board = await self._call(
            "POST",
            "/boards",
            "Failed to create board",
            json={"name": data.get("name"), "desc": data.get("description"), "defaultLists": False},
        )
        return self._result(agent_id, "createBoard", board, boardId=board.get("id"))

    async def create_list(self, agent_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        board_id = payload["boardId"]
        data = nested(payload, "data")
        board_list = await self._call(
            "POST",
            "/lists",
            "Failed to create list",
            json={"name": data.get("name"), "idBoard": board_id},
        )
        return self._result(agent_id, "createList", board_list, boardId=board_id, listId=board_list.get("id"))

    async def create_card(self, agent_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        list_id = payload["listId"]
        data = nested(payload, "data")
        card = await self._call(
            "POST",
            "/cards",
            "Failed to create card",
            json={
                "name": data.get("name"),
                "desc": data.get("description"),
                "idList": list_id,
                "due": data.get("dueDate"),
            },
        )
        return self._result(agent_id, "createCard", card, listId=list_id, cardId=card.get("id"))

    async def update_card(self, agent_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        card_id = payload["cardId"]
        card = await self._call("PUT", f"/cards/{card_id}", "Failed to update card", json=nested(payload, "data"))
        return self._result(agent_id, "updateCard", card, cardId=card_id)

    async def add_comment(self, agent_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        card_id = payload["cardId"]
        comment = await self._call(
            "POST",
            f"/cards/{card_id}/actions/comments",
            "Failed to add comment",
            json={"text": nested(payload, "data").get("text")},
        )
        return self._result(agent_id, "addComment", comment, cardId=card_id, commentId=comment.get("id"))

    async def get_boards(self, agent_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        boards = await self._call("GET", "/members/me/boards", "Failed to get boards")
        return self._result(agent_id, "getBoards", boards)

    async def get_board_lists(self, agent_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        board_id = payload["boardId"]
        lists = await self._call("GET", f"/boards/{board_id}/lists", "Failed to get board lists")
        return self._result(agent_id, "getBoardLists", lists, boardId=board_id)

    async def get_list_cards(self, agent_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        list_id = payload["listId"]
        cards = await self._call("GET", f"/lists/{list_id}/cards", "Failed to get list cards")
        return self._result(agent_id, "getListCards", cards, listId=list_id)

    def _result(self, agent_id: str, action: str, response: Any, **ids: Any) -> dict[str, Any]:
        logger.info("providers.task_board.completed", action=action)
        return {
            "agentId": agent_id,
            "action": action,
            **{key: value for key, value in ids.items() if value is not None},
            "result": response,
            "requestId": correlation_id("board"),
        }
