"""Local JSON API the Pochatronic UI drives: matches, rounds, standings."""

from __future__ import annotations

import json
from http import HTTPStatus
from importlib.metadata import PackageNotFoundError, version
from typing import TYPE_CHECKING, Any, cast

import structlog
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from pocha.exceptions import (
    InvalidRosterError,
    LedgerStateError,
    MatchNotFoundError,
    PlayerNotFoundError,
    RoundNotFoundError,
    RoundValidationError,
    StorageError,
    UnsupportedSettingsError,
)
from pocha.models import RoundProposal
from pocha.ranking import standings_through
from pocha.repository import FileMatchRepository
from pocha.server.settings import PochaServerSettings
from pocha.server.types import CreateMatchRequest
from pocha.service import MatchService
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from starlette.requests import Request

    from pocha.match import Match
    from pocha.models import Round, StandingEntry
    from pocha.repository import MatchRepository
    from pocha.service import SaveStatus

_MAX_REQUEST_BODY_SIZE = 16384


def _app_version() -> str:
    try:
        return version("pochatronic")
    except PackageNotFoundError:
        return "dev"


class _BadRequestError(Exception):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


async def _read_json_body(request: Request) -> dict[str, Any]:
    raw_body = await request.body()
    if len(raw_body) > _MAX_REQUEST_BODY_SIZE:
        raise _BadRequestError("Request body too large")
    if not raw_body.strip():
        return {}
    try:
        body = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError) as e:
        raise _BadRequestError("Invalid JSON body") from e
    if not isinstance(body, dict):
        raise _BadRequestError("JSON body must be an object")
    return body


def _round_payload(round_: Round, match: Match) -> dict[str, Any]:
    return {
        "index": round_.index,
        "hand": round_.hand,
        "cards_dealt": round_.cards_dealt,
        "closed": round_.closed,
        "amends": round_.amends,
        "played_at": round_.played_at.isoformat(),
        "players": [
            {"player_id": p.player_id, "bid": bid, "tricks": tricks, "delta": delta}
            for p, bid, tricks, delta in zip(match.players, round_.bids, round_.tricks, round_.deltas, strict=True)
        ],
    }


def _standings_payload(standings: list[StandingEntry]) -> list[dict[str, Any]]:
    return [{**entry.model_dump(mode="json"), "rank_delta": entry.rank_delta} for entry in standings]


def _save_payload(save: SaveStatus) -> dict[str, Any]:
    if save.saved:
        return {"saved": True}
    return {"saved": False, "warning": f"Changes are not saved yet: {save.error}"}


def _match_payload(match: Match) -> dict[str, Any]:
    next_hand = match.next_hand if not match.ledger.finished else None
    return {
        "match_id": match.match_id,
        "status": match.status.value,
        "created_at": match.created_at.isoformat(),
        "updated_at": match.updated_at.isoformat(),
        "players": [p.model_dump() for p in match.players],
        "settings": match.settings.model_dump(mode="json"),
        "next_hand": next_hand,
        "next_cards_dealt": match.settings.cards_for_hand(next_hand) if next_hand is not None else None,
        "next_dealer": match.dealer_for_hand(next_hand).player_id if next_hand is not None else None,
        "rounds": [_round_payload(r, match) for r in match.ledger.history()],
        "standings": _standings_payload(standings_through(match)),
    }


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "version": _app_version()})


async def list_matches(request: Request) -> JSONResponse:
    service: MatchService = request.app.state.match_service
    summaries = await service.list_matches()
    return JSONResponse({"matches": [s.model_dump(mode="json") for s in summaries]})


async def create_match(request: Request) -> JSONResponse:
    service: MatchService = request.app.state.match_service
    body = await _read_json_body(request)
    try:
        req = CreateMatchRequest(**body)
    except (TypeError, ValidationError) as e:
        return JSONResponse({"error": str(e)}, status_code=HTTPStatus.UNPROCESSABLE_ENTITY)

    outcome = await service.create_match(req.roster(), req.settings)
    return JSONResponse(
        {**_match_payload(outcome.match), **_save_payload(outcome.save)},
        status_code=HTTPStatus.CREATED,
    )


async def get_match(request: Request) -> JSONResponse:
    service: MatchService = request.app.state.match_service
    match = await service.get_match(request.path_params["match_id"])
    return JSONResponse(_match_payload(match))


async def delete_match(request: Request) -> Response:
    service: MatchService = request.app.state.match_service
    await service.delete_match(request.path_params["match_id"])
    return Response(status_code=HTTPStatus.NO_CONTENT)


async def finish_match(request: Request) -> JSONResponse:
    service: MatchService = request.app.state.match_service
    outcome = await service.finish_match(request.path_params["match_id"])
    return JSONResponse({**_match_payload(outcome.match), **_save_payload(outcome.save)})


async def _parse_proposal(request: Request) -> RoundProposal:
    body = await _read_json_body(request)
    try:
        return RoundProposal(**body)
    except (TypeError, ValidationError) as e:
        raise _BadRequestError(str(e)) from e


async def submit_round(request: Request) -> JSONResponse:
    service: MatchService = request.app.state.match_service
    proposal = await _parse_proposal(request)
    outcome = await service.submit_round(request.path_params["match_id"], proposal)
    return JSONResponse(
        {
            "round": _round_payload(outcome.round, outcome.match),
            "standings": _standings_payload(outcome.standings),
            "status": outcome.match.status.value,
            **_save_payload(outcome.save),
        },
        status_code=HTTPStatus.CREATED,
    )


async def amend_round(request: Request) -> JSONResponse:
    service: MatchService = request.app.state.match_service
    proposal = await _parse_proposal(request)
    outcome = await service.amend_round(request.path_params["match_id"], request.path_params["index"], proposal)
    return JSONResponse(
        {
            "round": _round_payload(outcome.round, outcome.match),
            "standings": _standings_payload(outcome.standings),
            "status": outcome.match.status.value,
            **_save_payload(outcome.save),
        },
        status_code=HTTPStatus.CREATED,
    )


async def list_rounds(request: Request) -> JSONResponse:
    service: MatchService = request.app.state.match_service
    match = await service.get_match(request.path_params["match_id"])
    return JSONResponse({"rounds": [_round_payload(r, match) for r in match.ledger.history()]})


async def get_round(request: Request) -> JSONResponse:
    service: MatchService = request.app.state.match_service
    match = await service.get_match(request.path_params["match_id"])
    round_ = match.ledger.at(request.path_params["index"])
    return JSONResponse(_round_payload(round_, match))


async def get_standings(request: Request) -> JSONResponse:
    service: MatchService = request.app.state.match_service
    through_param = request.query_params.get("through")
    through: int | None = None
    if through_param is not None:
        try:
            through = int(through_param)
        except ValueError as e:
            raise _BadRequestError("'through' must be an integer round index") from e
    standings = await service.standings(request.path_params["match_id"], through)
    return JSONResponse({"through": through, "standings": _standings_payload(standings)})


async def _bad_request_handler(_request: Request, exc: Exception) -> JSONResponse:
    bad_request = cast("_BadRequestError", exc)
    return JSONResponse({"error": bad_request.message}, status_code=HTTPStatus.UNPROCESSABLE_ENTITY)


async def _round_rejected_handler(_request: Request, exc: Exception) -> JSONResponse:
    rejection = cast("RoundValidationError", exc).rejection
    logger.info("round rejected", rule=rejection.rule, players=rejection.player_ids)
    return JSONResponse(
        {"error": rejection.message, "rule": rejection.rule.value, "players": list(rejection.player_ids)},
        status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
    )


async def _invalid_match_handler(_request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse({"error": str(exc)}, status_code=HTTPStatus.UNPROCESSABLE_ENTITY)


async def _not_found_handler(_request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse({"error": str(exc)}, status_code=HTTPStatus.NOT_FOUND)


async def _ledger_state_handler(_request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse({"error": str(exc)}, status_code=HTTPStatus.CONFLICT)


async def _storage_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.warning("storage unavailable", error=str(exc))
    return JSONResponse({"error": str(exc)}, status_code=HTTPStatus.SERVICE_UNAVAILABLE)


def create_app(
    settings: PochaServerSettings | None = None,
    repository: MatchRepository | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = PochaServerSettings()

    if repository is None:
        repository = FileMatchRepository(settings.data_dir)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/matches", list_matches, methods=["GET"]),
        Route("/matches", create_match, methods=["POST"]),
        Route("/matches/{match_id}", get_match, methods=["GET"]),
        Route("/matches/{match_id}", delete_match, methods=["DELETE"]),
        Route("/matches/{match_id}/finish", finish_match, methods=["POST"]),
        Route("/matches/{match_id}/rounds", list_rounds, methods=["GET"]),
        Route("/matches/{match_id}/rounds", submit_round, methods=["POST"]),
        Route("/matches/{match_id}/rounds/{index:int}", get_round, methods=["GET"]),
        Route("/matches/{match_id}/rounds/{index:int}/amend", amend_round, methods=["POST"]),
        Route("/matches/{match_id}/standings", get_standings, methods=["GET"]),
    ]

    # RoundNotFoundError is a LedgerStateError but reads as a missing resource.
    exception_handlers = {
        _BadRequestError: _bad_request_handler,
        RoundValidationError: _round_rejected_handler,
        InvalidRosterError: _invalid_match_handler,
        UnsupportedSettingsError: _invalid_match_handler,
        MatchNotFoundError: _not_found_handler,
        RoundNotFoundError: _not_found_handler,
        PlayerNotFoundError: _not_found_handler,
        LedgerStateError: _ledger_state_handler,
        StorageError: _storage_handler,
    }

    app = Starlette(routes=routes, exception_handlers=exception_handlers)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.match_service = MatchService(repository)

    logger.info("pochatronic server ready", data_dir=settings.data_dir)
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory (uvicorn --factory pocha.server.app:get_app)."""
    settings = PochaServerSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_app(settings=settings)
