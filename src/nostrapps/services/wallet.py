"""Nostr Wallet Connect payments.

[WalletService.send_payment()][nostrapps.services.wallet.WalletService.send_payment]
performs one ``pay_invoice`` round trip:

1. Encrypt the request for the wallet (NIP-04) and sign a kind-23194 event
   tagged ``p`` with the wallet public key.
2. Subscribe to kind-23195 replies authored by the wallet and tagged ``e``
   with the request id.
3. Publish the request once the reply subscription has reached EOSE, so the
   reply cannot slip past the subscription.
4. Decrypt the first reply and return its preimage.

The whole exchange is bounded by ``ClientConfig.payment_timeout``. The reply
subscription is stopped whatever the outcome.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import TYPE_CHECKING

from nostrapps.core.config import ClientConfig
from nostrapps.core.exceptions import (
    ConfigurationError,
    InvalidPaymentReplyError,
    PaymentTimeoutError,
)
from nostrapps.core.logger import Logger
from nostrapps.models.constants import EventKind
from nostrapps.models.filter import EventFilter
from nostrapps.nips.nip47 import build_pay_invoice_request, parse_payment_reply
from nostrapps.utils.keys import KeysSigner


if TYPE_CHECKING:
    from nostrapps.core.pool import RelayPool
    from nostrapps.models.event import Event
    from nostrapps.nips.nip47 import WalletInfo
    from nostrapps.utils.keys import Signer


@dataclass(frozen=True, slots=True)
class PaymentResult:
    """Outcome of a successful payment."""

    preimage: str
    request_id: str


class WalletService:
    """Sends ``pay_invoice`` requests to a wallet service.

    Args:
        pool: Relay transport.
        config: Supplies ``payment_timeout`` and ``publish_timeout``.
    """

    def __init__(self, pool: RelayPool, config: ClientConfig | None = None) -> None:
        self._pool = pool
        self._config = config or ClientConfig()
        self._logger = Logger("wallet")

    async def send_payment(
        self, wallet: WalletInfo, invoice: str, signer: Signer | None = None
    ) -> PaymentResult:
        """Ask *wallet* to pay *invoice* and wait for the preimage.

        Args:
            wallet: Wallet connection details.
            invoice: BOLT-11 invoice.
            signer: Request signer; defaults to the wallet connect secret.

        Raises:
            ConfigurationError: If no signer is given and the wallet has no
                secret.
            PaymentTimeoutError: If no reply arrived in time.
            PaymentRejectedError: If the wallet reported an error.
            InvalidPaymentReplyError: If the reply could not be understood.
            PublishingError: If no relay accepted the request.
        """
        if signer is None:
            if not wallet.secret:
                raise ConfigurationError("wallet connect secret is required to sign requests")
            signer = KeysSigner.from_secret(wallet.secret)

        payload = json.dumps(build_pay_invoice_request(invoice))
        content = await signer.encrypt(wallet.public_key, payload)
        request = await signer.sign(EventKind.NWC_REQUEST, content, [["p", wallet.public_key]])

        reply: asyncio.Future[Event] = asyncio.get_running_loop().create_future()
        eose = asyncio.Event()

        def on_reply(event: Event) -> None:
            if not reply.done():
                reply.set_result(event)

        handle = self._pool.subscribe(
            EventFilter(
                kinds=[EventKind.NWC_RESPONSE],
                authors=[wallet.public_key],
                tags={"e": [request.id]},
            ),
            [wallet.relay],
        )
        handle.on_event(on_reply)
        handle.on_eose(eose.set)

        self._logger.info("payment_started", request_id=request.id, relay=wallet.relay)
        try:
            async with asyncio.timeout(self._config.payment_timeout):
                await handle.start()
                await eose.wait()
                await self._pool.publish(
                    request, [wallet.relay], self._config.publish_timeout
                )
                event = await reply
        except TimeoutError:
            self._logger.warning("payment_timeout", request_id=request.id)
            raise PaymentTimeoutError("Timeout error, payment might have failed") from None
        finally:
            await handle.stop()

        try:
            plaintext = await signer.decrypt(wallet.public_key, event.content)
            data = json.loads(plaintext)
        except Exception as e:  # Intentionally broad: signer backends raise their own error types
            raise InvalidPaymentReplyError("Invalid payment reply") from e

        preimage = parse_payment_reply(data)
        self._logger.info("payment_settled", request_id=request.id)
        return PaymentResult(preimage=preimage, request_id=request.id)
