import unittest

from app.services.payments.errors import AuthenticityError, ConfigurationError
from app.services.payments.signature import compute_signature, verify_signature

SECRET = "lenco-test-key"
BODY = b'{"event":"charge.success","data":{"reference":"pay_1","status":"success"}}'


class TestVerifySignature(unittest.TestCase):
    def test_valid_signature_passes(self):
        verify_signature(BODY, compute_signature(BODY, SECRET), SECRET)

    def test_uppercase_hex_and_whitespace_accepted(self):
        verify_signature(BODY, "  " + compute_signature(BODY, SECRET).upper() + "\n", SECRET)

    def test_signature_covers_raw_bytes(self):
        reformatted = b'{"event": "charge.success", "data": {"reference": "pay_1", "status": "success"}}'
        with self.assertRaises(AuthenticityError):
            verify_signature(reformatted, compute_signature(BODY, SECRET), SECRET)

    def test_wrong_secret_rejected(self):
        with self.assertRaises(AuthenticityError):
            verify_signature(BODY, compute_signature(BODY, "other"), SECRET)

    def test_missing_header_rejected(self):
        for signature in (None, ""):
            with self.assertRaises(AuthenticityError):
                verify_signature(BODY, signature, SECRET)

    def test_non_ascii_signature_rejected_not_crashing(self):
        with self.assertRaises(AuthenticityError):
            verify_signature(BODY, "ü" * 64, SECRET)

    def test_missing_secret_is_configuration_error(self):
        for secret in (None, ""):
            with self.assertRaises(ConfigurationError) as ctx:
                verify_signature(BODY, compute_signature(BODY, "x"), secret)
            self.assertEqual(ctx.exception.status_code, 500)


if __name__ == "__main__":
    unittest.main()
