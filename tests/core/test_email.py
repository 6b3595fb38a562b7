"""
Unit tests for the Resend mail transport.
"""

from unittest.mock import patch

import pytest

from research_engine.core.email import (
    AUTO_REPLY_HEADERS,
    NO_REPLY_NOTE,
    MailDeliveryError,
    OutgoingEmail,
    ResendMailTransport,
)

MESSAGE = OutgoingEmail(
    to="jdoe@miami.edu",
    subject="Application Received",
    text="Thank you for applying.",
    html="<p>Thank you for applying.</p>",
)


class TestResendMailTransport:
    @pytest.mark.asyncio
    async def test_without_api_key_logs_instead_of_sending(self):
        transport = ResendMailTransport(None, "noreply@research.test", "support@research.test")

        with patch("research_engine.core.email.resend.Emails.send") as mock_send:
            await transport.send(MESSAGE)

        mock_send.assert_not_called()

    @pytest.mark.asyncio
    async def test_sends_with_no_reply_note_and_headers(self):
        transport = ResendMailTransport("re_key", "noreply@research.test", "support@research.test")

        with patch(
            "research_engine.core.email.resend.Emails.send", return_value={"id": "email-1"}
        ) as mock_send:
            await transport.send(MESSAGE)

        params = mock_send.call_args[0][0]
        assert params["from"] == "noreply@research.test"
        assert params["to"] == ["jdoe@miami.edu"]
        assert params["reply_to"] == "support@research.test"
        assert params["headers"] == AUTO_REPLY_HEADERS
        assert params["text"].startswith("Thank you for applying.")
        assert params["text"].endswith(NO_REPLY_NOTE)
        assert NO_REPLY_NOTE in params["html"]

    @pytest.mark.asyncio
    async def test_provider_failure_raises(self):
        transport = ResendMailTransport("re_key", "noreply@research.test", "support@research.test")

        with patch(
            "research_engine.core.email.resend.Emails.send",
            side_effect=RuntimeError("503 Service Unavailable"),
        ):
            with pytest.raises(MailDeliveryError, match="jdoe@miami.edu"):
                await transport.send(MESSAGE)
