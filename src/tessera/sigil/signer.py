"""
External signing adapter.

Hands a prepared envelope's XDR to the signing agent and checks what comes
back: the same transaction, carrying a valid signature from the expected
account. The adapter never sees key material and keeps no state, so
cancelling a pending signature (the user walked away from the wallet prompt)
leaves the agent usable for the next call.
"""

from __future__ import annotations

from typing import Optional

from loguru import logger
from stellar_sdk import Keypair, TransactionEnvelope
from stellar_sdk.exceptions import BadSignatureError

from ..pneuma.errors import AgentUnavailable, SigningProtocolError, SigningRejected
from ..pneuma.network import NetworkContext
from ..pneuma.tx import PreparedEnvelope, SignedEnvelope
from .agent import (
    DECLINED_CODES,
    UNAVAILABLE_CODES,
    AgentTransport,
    AgentTransportError,
    XDR_DECODE_ERRORS,
    agent_error,
    check_response,
)


def is_signed_by(envelope: TransactionEnvelope, address: str) -> bool:
    """True if ``envelope`` carries a signature by ``address`` that verifies."""
    try:
        keypair = Keypair.from_public_key(address)
    except ValueError:
        return False
    tx_hash = envelope.hash()
    for decorated in envelope.signatures:
        if decorated.signature_hint != keypair.signature_hint():
            continue
        try:
            keypair.verify(tx_hash, decorated.signature)
        except BadSignatureError:
            continue
        return True
    return False


async def sign(
    prepared: PreparedEnvelope,
    network: NetworkContext,
    transport: AgentTransport,
    *,
    expected_signer: Optional[str] = None,
) -> SignedEnvelope:
    """
    Have the agent sign ``prepared``.

    Args:
        prepared: Envelope with simulated resources merged in
        network: Supplies the passphrase the signature commits to
        transport: Signing agent
        expected_signer: If set, the returned envelope must carry a valid
            signature from this account

    Raises:
        SigningRejected: The user declined
        AgentUnavailable: The agent disappeared since it was probed
        SigningProtocolError: The agent answered with something unusable
    """
    logger.info("sign.request sequence={} fee={}", prepared.sequence, prepared.fee)
    try:
        payload = await transport.sign_transaction(prepared.to_xdr(), network.passphrase)
    except AgentTransportError as exc:
        raise AgentUnavailable(str(exc), stage="sign") from exc

    check_response(payload, stage="sign")
    error = agent_error(payload)
    if error:
        code, message = error
        if code in DECLINED_CODES:
            logger.info("sign.declined")
            raise SigningRejected(message or "User declined to sign")
        if code in UNAVAILABLE_CODES:
            raise AgentUnavailable(message or "Signing agent unavailable", stage="sign")
        raise SigningProtocolError(f"Agent signing error ({code}): {message}")

    signed_xdr = payload.get("signedTxXdr")
    if not signed_xdr:
        raise SigningProtocolError("Agent returned no signed transaction")

    signer = payload.get("signerAddress")
    if expected_signer and signer and signer != expected_signer:
        raise SigningProtocolError(f"Agent signed as {signer}, expected {expected_signer}")
    signer = signer or expected_signer

    try:
        envelope = TransactionEnvelope.from_xdr(signed_xdr, network.passphrase)
    except XDR_DECODE_ERRORS as exc:
        raise SigningProtocolError("Agent returned a signed transaction that is not envelope XDR") from exc
    if envelope.hash_hex() != prepared.hash():
        raise SigningProtocolError("Agent returned a different transaction than it was asked to sign")
    if not envelope.signatures:
        raise SigningProtocolError("Agent returned the transaction without a signature")
    if signer and not is_signed_by(envelope, signer):
        raise SigningProtocolError(f"Transaction carries no valid signature from {signer}")

    logger.debug("sign.verified signer={} signatures={}", signer, len(envelope.signatures))
    return SignedEnvelope(prepared=prepared, signed_xdr=signed_xdr, signer_address=signer)
