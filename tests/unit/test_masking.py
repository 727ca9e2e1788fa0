import re
import string

import pytest
from hypothesis import given
from hypothesis import strategies as st
from structlog.testing import capture_logs

from slowquery_sentinel.sql import SqlMasker, contains_sensitive, mask, quick_mask
from slowquery_sentinel.sql.masking import REDACTED_PLACEHOLDER, MaskingRule

phones = st.from_regex(r"1[3-9][0-9]{9}", fullmatch=True)
emails = st.from_regex(r"[a-z]{1,8}@[a-z]{2,8}\.(com|org|net)", fullmatch=True)
ipv4s = st.ip_addresses(v=4).map(str)
national_ids = st.from_regex(
    r"[1-9][0-9]{5}(19|20)[0-9]{2}(0[1-9]|1[0-2])(0[1-9]|[12][0-9]|3[01])[0-9]{3}[0-9X]",
    fullmatch=True,
)
landlines = st.from_regex(r"0[1-9][0-9]{1,2}-[2-9][0-9]{6,7}", fullmatch=True)
bank_cards = st.from_regex(r"62[0-9]{14,17}", fullmatch=True)
secret_assignments = st.builds(
    "{} = '{}'".format,
    st.sampled_from(["password", "pwd", "secret"]),
    st.from_regex(r"[A-Za-z0-9!#]{1,16}", fullmatch=True),
)
token_assignments = st.builds(
    "{} = '{}'".format,
    st.sampled_from(["api_key", "access_token", "token"]),
    st.from_regex(r"[A-Za-z0-9_-]{8,32}", fullmatch=True),
)
host_assignments = st.one_of(
    ipv4s.map("host={}".format),
    st.from_regex(r"[a-z][a-z0-9.-]{0,20}", fullmatch=True).map("server = '{}'".format),
)
sensitive_conditions = st.one_of(
    st.one_of(phones, emails, ipv4s, national_ids, landlines, bank_cards).map("v = '{}'".format),
    secret_assignments,
    token_assignments,
    host_assignments,
)
clean_text = st.text(alphabet=string.ascii_letters + " ,()'_", max_size=80)


def _explode(match):
    raise RuntimeError("replacement blew up")


BROKEN_RULE = MaskingRule("broken", re.compile(r"secret"), _explode)


class TestMask:
    def test_phone_keeps_prefix_and_suffix(self):
        masked = mask("SELECT * FROM users WHERE phone = '13812345678'")
        assert masked == "SELECT * FROM users WHERE phone = '138****5678'"

    def test_email_keeps_first_char_and_domain(self):
        masked = mask("SELECT id FROM users WHERE email = 'alice.smith@example.com'")
        assert "a***@example.com" in masked
        assert "alice.smith" not in masked

    def test_ipv4_masks_last_octet(self):
        masked = mask("SELECT * FROM sessions WHERE client_ip = '192.168.1.100'")
        assert "192.168.1.***" in masked
        assert "192.168.1.100" not in masked

    def test_national_id(self):
        masked = mask("SELECT * FROM members WHERE id_card = '110101199003071234'")
        assert "110101********1234" in masked

    def test_bank_card(self):
        masked = mask("UPDATE wallets SET card_no = '6222021234567890123' WHERE id = 1")
        assert "6222*******0123" in masked
        assert "6222021234567890123" not in masked

    def test_password_assignment_keeps_quotes(self):
        masked = mask("UPDATE users SET password = 'hunter2' WHERE id = 1")
        assert masked == "UPDATE users SET password = '******' WHERE id = 1"

    def test_token_assignment(self):
        masked = mask("INSERT INTO creds SET api_key = 'sk-abcdef123456'")
        assert "api_key = '******'" in masked
        assert "sk-abcdef123456" not in masked

    def test_short_token_value_left_alone(self):
        sql = "SELECT * FROM t WHERE token = 'abc'"
        assert mask(sql) == sql

    def test_connection_host_ip(self):
        masked = mask("-- host=10.20.30.40\nSELECT 1")
        assert "host=***" in masked
        assert "10.20.30" not in masked

    def test_connection_host_quoted(self):
        masked = mask("CALL connect(server = 'db-prod-01.internal')")
        assert masked == "CALL connect(server = '***')"

    @pytest.mark.parametrize(
        "sql",
        [
            "SELECT * FROM a JOIN b ON a.host = b.host",
            "SELECT * FROM servers WHERE host = backup_host",
            "SELECT host, server FROM nodes WHERE hostname=alias",
        ],
    )
    def test_host_columns_left_alone(self, sql):
        assert mask(sql) == sql
        assert not contains_sensitive(sql)

    def test_clean_sql_untouched(self):
        sql = "SELECT * FROM orders WHERE id = 42 AND status = 'paid'"
        assert mask(sql) == sql

    def test_empty_and_blank_input(self):
        assert mask("") == ""
        assert mask("   ") == "   "

    def test_several_values_in_one_statement(self):
        masked = mask(
            "INSERT INTO contacts (phone, email) VALUES ('13912345678', 'bob@corp.org')"
        )
        assert "139****5678" in masked
        assert "b***@corp.org" in masked


class TestQuickMask:
    def test_masks_phone_ip_and_email_only(self):
        sql = "UPDATE users SET password = 'hunter2' WHERE phone = '13812345678'"
        masked = quick_mask(sql)
        assert "138****5678" in masked
        assert "password = 'hunter2'" in masked

    def test_ip_and_email(self):
        masked = quick_mask("SELECT 1 FROM t WHERE ip = '10.0.0.7' OR mail = 'zoe@mail.com'")
        assert "10.0.0.***" in masked
        assert "z***@mail.com" in masked


class TestContainsSensitive:
    def test_detects_phone(self):
        assert contains_sensitive("SELECT * FROM users WHERE phone = '13812345678'")

    def test_detects_password(self):
        assert contains_sensitive("SET password = 'x1'")

    def test_clean_statement(self):
        assert not contains_sensitive("SELECT * FROM orders WHERE id = 42")

    def test_blank(self):
        assert not contains_sensitive("")
        assert not contains_sensitive("  \n")


class TestMaskingFailure:
    def test_fail_open_returns_input(self):
        masker = SqlMasker(rules=[BROKEN_RULE])
        with capture_logs() as logs:
            result = masker.mask("SELECT secret FROM vault")

        assert result == "SELECT secret FROM vault"
        failures = [entry for entry in logs if entry["event"] == "masking.failed"]
        assert len(failures) == 1
        assert failures[0]["rule"] == "broken"
        assert failures[0]["fail_open"] is True
        assert failures[0]["log_level"] == "error"

    def test_fail_closed_returns_placeholder(self):
        masker = SqlMasker(rules=[BROKEN_RULE], fail_open=False)
        assert masker.mask("SELECT secret FROM vault") == REDACTED_PLACEHOLDER

    def test_failure_does_not_raise_when_no_match(self):
        masker = SqlMasker(rules=[BROKEN_RULE], fail_open=False)
        assert masker.mask("SELECT 1") == "SELECT 1"

    def test_rules_property_defaults(self):
        assert SqlMasker().rules == SqlMasker.DEFAULT_RULES


@given(phones)
def test_phone_never_survives_masking(phone):
    masked = mask(f"SELECT * FROM users WHERE phone = '{phone}'")
    assert phone not in masked
    assert f"{phone[:3]}****{phone[-4:]}" in masked


@given(emails)
def test_email_never_survives_masking(email):
    masked = mask(f"SELECT * FROM users WHERE email = '{email}'")
    assert email not in masked
    assert "***@" in masked


@given(ipv4s)
def test_ipv4_last_octet_hidden(ip):
    masked = mask(f"SELECT * FROM logins WHERE ip = '{ip}'")
    assert f"{ip.rsplit('.', 1)[0]}.***" in masked


@given(sensitive_conditions)
def test_mask_is_idempotent(condition):
    sql = f"SELECT * FROM t WHERE {condition}"
    once = mask(sql)
    assert once != sql
    assert mask(once) == once


@given(clean_text)
def test_text_without_sensitive_values_is_unchanged(text):
    assert not contains_sensitive(text)
    assert mask(text) == text
