"""Tests for pure helpers"""

from pr_environment import _helpers


class TestResolveEnvironmentKey:
    def test_empty_context_falls_back_to_default(self):
        assert _helpers.resolve_environment_key({}) == "default"

    def test_uses_pr_number(self):
        assert _helpers.resolve_environment_key({"prNumber": "123"}) == "123"

    def test_accepts_snake_case_key(self):
        assert _helpers.resolve_environment_key({"pr_number": "77"}) == "77"

    def test_blank_or_none_falls_back(self):
        assert _helpers.resolve_environment_key({"prNumber": "  "}) == "default"
        assert _helpers.resolve_environment_key({"prNumber": None}) == "default"

    def test_non_string_value_is_stringified(self):
        assert _helpers.resolve_environment_key({"prNumber": 42}) == "42"

    def test_idempotent(self):
        context = {"prNumber": "9"}
        first = _helpers.resolve_environment_key(context)
        assert _helpers.resolve_environment_key(context) == first

    def test_ignores_unrelated_keys(self):
        assert _helpers.resolve_environment_key({"stage": "prod"}) == "default"


class TestIsValidEnvironmentKey:
    def test_accepts_digits_letters_hyphens(self):
        assert _helpers.is_valid_environment_key("123")
        assert _helpers.is_valid_environment_key("feature-x")

    def test_rejects_empty(self):
        assert not _helpers.is_valid_environment_key("")

    def test_rejects_leading_hyphen_and_separators(self):
        assert not _helpers.is_valid_environment_key("-1")
        assert not _helpers.is_valid_environment_key("a/b")
        assert not _helpers.is_valid_environment_key("a_b")

    def test_rejects_trailing_newline(self):
        assert not _helpers.is_valid_environment_key("123\n")

    def test_rejects_non_ascii_letters_and_digits(self):
        assert not _helpers.is_valid_environment_key("pr-\u00e9")
        assert not _helpers.is_valid_environment_key("\u0661\u0662\u0663")


class TestIsValidAccountId:
    def test_twelve_digits(self):
        assert _helpers.is_valid_account_id("111111111111")

    def test_rejects_short_and_non_numeric(self):
        assert not _helpers.is_valid_account_id("1234")
        assert not _helpers.is_valid_account_id("11111111111x")
        assert not _helpers.is_valid_account_id("")

    def test_rejects_trailing_newline(self):
        assert not _helpers.is_valid_account_id("111111111111\n")

    def test_rejects_non_ascii_digits(self):
        assert not _helpers.is_valid_account_id("\u0661" * 12)


class TestResourceName:
    def test_without_scope_token(self):
        name = _helpers.resource_name("api-processor-lambda", "123")
        assert name == "api-processor-lambda-pr-123"

    def test_with_scope_token(self):
        name = _helpers.resource_name("bucket", "123", "111111111111")
        assert name == "bucket-pr-123-111111111111"

    def test_lower(self):
        assert _helpers.resource_name("Bucket", "AbC", lower=True) == "bucket-pr-abc"

    def test_keeps_case_by_default(self):
        assert _helpers.resource_name("fn", "AbC") == "fn-pr-AbC"


class TestArns:
    def test_bucket_arn(self):
        assert _helpers.bucket_arn("b") == "arn:aws:s3:::b"

    def test_log_group_arn_has_stream_suffix(self):
        arn = _helpers.log_group_arn("/aws/lambda/f", "us-east-1", "111111111111")
        assert arn == "arn:aws:logs:us-east-1:111111111111:log-group:/aws/lambda/f:*"

    def test_function_arn(self):
        arn = _helpers.function_arn("f", "eu-west-1", "111111111111")
        assert arn == "arn:aws:lambda:eu-west-1:111111111111:function:f"

    def test_role_arn_partition(self):
        arn = _helpers.role_arn("r", "111111111111", partition="aws-cn")
        assert arn == "arn:aws-cn:iam::111111111111:role/r"


class TestLogGroupName:
    def test_lambda_default_group(self):
        assert _helpers.log_group_name("fn") == "/aws/lambda/fn"


class TestEnvironmentTags:
    def test_tags_carry_key(self):
        tags = _helpers.environment_tags("5")
        assert tags["Environment"] == "pr-5"
        assert tags["PrNumber"] == "5"
