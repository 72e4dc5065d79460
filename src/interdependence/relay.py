"""Requests that ask the relay server to fork, sign or verify declarations.

The relay owns validation and the resulting ledger writes. This module only
shapes form-encoded requests and returns the relay's JSON replies.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence
from types import TracebackType
from urllib.parse import quote

import httpx

from interdependence.errors import (
    RelayUnavailableError,
    SignatureSubmissionError,
    WalletUnavailableError,
)
from interdependence.settings import InterdependenceSettings, get_settings
from interdependence.wallet import WalletProvider

LOGGER = logging.getLogger(__name__)

Notifier = Callable[[str], None]


def fork_form(new_text: str, authors: Sequence[str]) -> dict[str, str]:
    """Return the fork form body; ``authors`` is sent as a JSON array string."""

    return {"authors": json.dumps(list(authors)), "newText": new_text}


class RelayClient:
    """Async client for the relay server's fork, sign and verify endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float | None = None,
        notify: Notifier | None = None,
        settings: InterdependenceSettings | None = None,
    ) -> None:
        settings_obj = settings or get_settings()
        self._base = (base_url or settings_obj.effective_relay_url).rstrip("/")
        self._timeout = timeout_seconds or settings_obj.request_timeout
        self._notify = notify
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self._timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> RelayClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def fork_declaration(
        self, old_tx_id: str, new_text: str, authors: Sequence[str]
    ) -> object:
        """Ask the relay to publish a derivative of ``old_tx_id``.

        Args:
            old_tx_id: Declaration being forked.
            new_text: Text of the derivative declaration.
            authors: Co-authors of the derivative.

        Returns:
            The relay's decoded JSON reply.
        """

        return await self._post(
            f"/fork/{quote(old_tx_id, safe='')}", fork_form(new_text, authors)
        )

    async def sign_declaration(
        self,
        tx_id: str,
        name: str,
        handle: str,
        declaration: str,
        wallet: WalletProvider | None,
    ) -> object:
        """Sign ``declaration`` with ``wallet`` and submit it to the relay.

        The signed message is the declaration text itself. A relay failure
        after signing is reported through the notifier and raised as
        :class:`SignatureSubmissionError`; the signature is not retracted.

        Args:
            tx_id: Declaration being signed.
            name: Signer display name.
            handle: Signer social handle as typed by the user.
            declaration: Declaration text to sign.
            wallet: Wallet provider, or ``None`` when none is available.

        Returns:
            The relay's decoded JSON reply.

        Raises:
            WalletUnavailableError: If ``wallet`` is ``None``; raised before
                any network call.
            SignatureSubmissionError: If the relay cannot accept the signature.
        """

        if wallet is None:
            raise WalletUnavailableError(
                "No wallet found. Install a wallet provider to sign declarations."
            )

        await wallet.request_accounts()
        signature = await wallet.sign_message(declaration)
        address = await wallet.get_address()

        form = {
            "name": name,
            "address": address,
            "signature": signature,
            "handle": handle,
        }
        try:
            return await self._post(f"/sign/{quote(tx_id, safe='')}", form)
        except RelayUnavailableError as exc:
            self._notify_failure("Could not reach signing server")
            raise SignatureSubmissionError(
                str(exc),
                endpoint=exc.endpoint,
                signature=signature,
                address=address,
                status_code=exc.status_code,
            ) from exc

    async def verify_identity(self, address: str, handle: str) -> object:
        """Ask the relay to verify that ``handle`` belongs to ``address``."""

        return await self._post(
            f"/verify/{quote(handle, safe='')}", {"address": address}
        )

    async def _post(self, path: str, form: dict[str, str]) -> object:
        url = f"{self._base}{path}"
        try:
            response = await self._client.post(url, data=form, timeout=self._timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            LOGGER.warning(
                "Relay HTTP error",
                extra={"url": url, "status_code": exc.response.status_code},
                exc_info=exc,
            )
            raise RelayUnavailableError(
                f"Relay returned HTTP {exc.response.status_code}",
                endpoint=path,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            LOGGER.warning(
                "Relay transport error",
                extra={"url": url, "error_type": type(exc).__name__},
                exc_info=exc,
            )
            raise RelayUnavailableError(
                f"Relay request to {url} failed", endpoint=path
            ) from exc

        try:
            payload: object = response.json()
        except ValueError as exc:
            LOGGER.warning(
                "Relay response parsing error",
                extra={"url": url},
                exc_info=exc,
            )
            raise RelayUnavailableError(
                "Relay returned a non-JSON response",
                endpoint=path,
                status_code=response.status_code,
            ) from exc
        return payload

    def _notify_failure(self, message: str) -> None:
        LOGGER.error(message, extra={"relay_url": self._base})
        if self._notify is None:
            return
        try:
            self._notify(message)
        except Exception as exc:  # pragma: no cover - best-effort notification
            LOGGER.warning("Signing failure notifier raised", exc_info=exc)
