"""
Signer capability probe.

Tracks whether a signing agent is present and whether the user has granted
access. The agent's own answer is the only source of truth for the active
address: ``current_address`` asks it again every time.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from loguru import logger

from ..pneuma.errors import AgentUnavailable, AuthorizationDenied, SigningProtocolError
from .agent import (
    DECLINED_CODES,
    UNAVAILABLE_CODES,
    AgentTransport,
    AgentTransportError,
    agent_error,
    check_response,
)


class SignerStatus(str, Enum):
    UNKNOWN = "unknown"
    NOT_INSTALLED = "not_installed"
    UNAUTHORIZED = "unauthorized"
    AUTHORIZED = "authorized"


@dataclass(frozen=True)
class SigningAgentSession:
    installed: bool
    authorized: bool
    active_address: Optional[str] = None


class SignerProbe:
    def __init__(self, transport: AgentTransport) -> None:
        self.transport = transport
        self.status = SignerStatus.UNKNOWN
        self._address: Optional[str] = None

    @property
    def session(self) -> SigningAgentSession:
        return SigningAgentSession(
            installed=self.status in (SignerStatus.UNAUTHORIZED, SignerStatus.AUTHORIZED),
            authorized=self.status is SignerStatus.AUTHORIZED,
            active_address=self._address if self.status is SignerStatus.AUTHORIZED else None,
        )

    def _set(self, status: SignerStatus, address: Optional[str] = None) -> SignerStatus:
        if status is not self.status or address != self._address:
            logger.debug("probe.state {} -> {} address={}", self.status.value, status.value, address)
        self.status = status
        self._address = address
        return status

    async def probe_installed(self) -> SignerStatus:
        """
        Detect the agent and re-derive the access state.

        Never raises for an absent or unreachable agent: both mean
        ``NOT_INSTALLED``.
        """
        try:
            payload = check_response(await self.transport.is_connected(), stage="probe")
        except (AgentTransportError, SigningProtocolError) as exc:
            logger.debug("probe.absent error={}", exc)
            return self._set(SignerStatus.NOT_INSTALLED)
        if agent_error(payload) or not payload.get("isConnected"):
            return self._set(SignerStatus.NOT_INSTALLED)

        try:
            payload = check_response(await self.transport.get_address(), stage="probe")
        except (AgentTransportError, SigningProtocolError):
            return self._set(SignerStatus.UNAUTHORIZED)
        address = payload.get("address")
        if agent_error(payload) or not address:
            return self._set(SignerStatus.UNAUTHORIZED)
        return self._set(SignerStatus.AUTHORIZED, address)

    async def request_authorization(self) -> str:
        """
        Ask the user to grant access.

        Returns:
            Address the agent will sign with

        Raises:
            AgentUnavailable: If no agent is present
            AuthorizationDenied: If the user declines
        """
        if await self.probe_installed() is SignerStatus.NOT_INSTALLED:
            raise AgentUnavailable("No signing agent detected")

        try:
            payload = check_response(await self.transport.request_access(), stage="probe")
        except AgentTransportError as exc:
            self._set(SignerStatus.NOT_INSTALLED)
            raise AgentUnavailable(str(exc)) from exc

        error = agent_error(payload)
        if error:
            code, message = error
            if code in UNAVAILABLE_CODES:
                self._set(SignerStatus.NOT_INSTALLED)
                raise AgentUnavailable(message or "Signing agent unavailable")
            self._set(SignerStatus.UNAUTHORIZED)
            if code in DECLINED_CODES:
                raise AuthorizationDenied(message or "User declined access")
            raise AuthorizationDenied(f"Access request failed ({code}): {message}")

        address = payload.get("address")
        if not address:
            raise SigningProtocolError("Agent granted access without an address", stage="probe")
        logger.info("probe.authorized address={}", address)
        self._set(SignerStatus.AUTHORIZED, address)
        return address

    async def current_address(self) -> str:
        """
        Ask the agent which address is active.

        Only valid once authorized. Re-queries the agent instead of returning
        a remembered value.
        """
        if self.status is not SignerStatus.AUTHORIZED:
            raise AuthorizationDenied(f"Signer not authorized (state: {self.status.value})")
        try:
            payload = check_response(await self.transport.get_address(), stage="probe")
        except AgentTransportError as exc:
            self._set(SignerStatus.NOT_INSTALLED)
            raise AgentUnavailable(str(exc)) from exc

        address = payload.get("address")
        if agent_error(payload) or not address:
            self._set(SignerStatus.UNAUTHORIZED)
            raise AuthorizationDenied("Signing agent no longer grants access")
        self._set(SignerStatus.AUTHORIZED, address)
        return address
