import pytest

pytestmark = pytest.mark.unit


class TestSensitiveDataMasking:
    def test_card_number_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "card": "4111-1111-1111-1111"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "4111-1111-1111-1111" not in result["card"]
        assert "***MASKED***" in result["card"]

    def test_secret_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "data": 'secret: "rzp_live_abc"'}
        result = mask_sensitive_data(None, None, event_dict)
        assert "rzp_live_abc" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_authorization_header_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "header": "Authorization: eyJhbGciOiJSUzI1NiJ9"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "eyJhbGciOiJSUzI1NiJ9" not in result["header"]

    def test_non_string_values_untouched(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "amount": 54900}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["amount"] == 54900

    def test_non_sensitive_data_unchanged(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "payment.verified", "payment_id": "pay_29QQoUBi66xm2f"}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["payment_id"] == "pay_29QQoUBi66xm2f"
