"""Webhook ingestion application service - decode, reconcile, answer."""
import logging
from dataclasses import dataclass

from eventsync.application.services.reconcile_event import EventReconciler, ReconcileAction
from eventsync.domain.errors import MalformedPayload
from eventsync.domain.models.external_event import Probe
from eventsync.infrastructure.integrations.webhook_decoder import WebhookDecoder

logger = logging.getLogger(__name__)

MALFORMED_EVENT_TYPE = "malformed"


@dataclass
class IngestionResponse:
    """HTTP status code and JSON body to return to the webhook sender."""
    status_code: int
    body: dict


class WebhookIngestionService:
    """
    Application service turning one webhook request into one acknowledgment.

    Status codes:
    - 200 for processed, ignored, unknown-type, duplicate, probe and
      owner-not-found events
    - 400 when the body is malformed
    - 500 for anything unexpected, with a generic message
    """

    def __init__(self, decoder: WebhookDecoder, reconciler: EventReconciler):
        """
        Initialize service.

        Args:
            decoder: Decoder for the source's body format
            reconciler: Reconciler for the source's domain
        """
        self.decoder = decoder
        self.reconciler = reconciler

    async def ingest(self, raw_body: bytes) -> IngestionResponse:
        """
        Decode and reconcile a webhook body.

        Args:
            raw_body: Request body bytes

        Returns:
            IngestionResponse to send back
        """
        domain = self.decoder.domain.value
        try:
            decoded = self.decoder.decode(raw_body)
        except MalformedPayload as e:
            logger.error(f"Malformed {domain} webhook: {str(e)} (keys: {e.received_keys})")
            self.reconciler.record_raw(
                natural_key=None,
                event_type=MALFORMED_EVENT_TYPE,
                raw_payload=WebhookDecoder.raw_for_log(raw_body)
            )
            return IngestionResponse(400, {
                "success": False,
                "error": str(e),
                "received_keys": e.received_keys
            })
        except Exception as e:
            logger.error(f"Unexpected error decoding {domain} webhook: {str(e)}")
            return self._internal_error()

        if isinstance(decoded, Probe):
            return self._acknowledge_probe(decoded, raw_body)

        try:
            result = await self.reconciler.reconcile(decoded, WebhookDecoder.raw_for_log(raw_body))
        except Exception as e:
            logger.error(f"Unexpected error reconciling {domain} event {decoded.natural_key}: {str(e)}")
            return self._internal_error()

        return IngestionResponse(200, result.to_response())

    def _acknowledge_probe(self, probe: Probe, raw_body: bytes) -> IngestionResponse:
        logger.info(f"{probe.domain.value} {probe.kind} probe acknowledged: {probe.probe_id}")
        self.reconciler.record_raw(
            natural_key=probe.probe_id,
            event_type=probe.kind,
            raw_payload=WebhookDecoder.raw_for_log(raw_body),
            decoded_payload=probe.decoded_payload
        )
        return IngestionResponse(200, {
            "success": True,
            "action": ReconcileAction.PROBE,
            "message": "Webhook ping received successfully",
            "pingId": probe.probe_id
        })

    @staticmethod
    def _internal_error() -> IngestionResponse:
        return IngestionResponse(500, {"success": False, "error": "Internal server error"})
