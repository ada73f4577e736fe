"""Constants and fakes shared by the test modules."""

TEST_SECURITY_KEY = "test-security-key-that-is-long-enough-for-hs512-signing-0123456789"
TEST_ISSUER = "heuly-tests"
TEST_AUDIENCE = "heuly-clients"
TEST_RESET_URL = "http://localhost:8000/account/reset-password"

TEST_NAME = "hello"
TEST_EMAIL = "olaMundo123@gmail.com"
TEST_PASSWORD = "Test@123"
NEW_PASSWORD = "N3w!Password"


class RecordingEmailSender:
    """Email sender that keeps every message instead of delivering it."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []

    async def send_email(self, to: str, subject: str, body: str) -> None:
        self.sent.append((to, subject, body))


class FailingEmailSender:
    """Email sender whose transport is always down."""

    async def send_email(self, to: str, subject: str, body: str) -> None:
        msg = f"SMTP relay unreachable for {to}"
        raise ConnectionRefusedError(msg)
