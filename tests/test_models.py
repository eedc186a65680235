"""Unit tests for backoff data models."""

import io

import pytest
from yarl import URL

from http_backoff.exceptions import ConfigurationError
from http_backoff.models import (
  BackoffConfig,
  BackoffRequest,
  Duplicable,
  HostPolicy,
  NotDuplicable,
)


class TestHostPolicy:
  """Test cases for HostPolicy enum."""

  @pytest.mark.parametrize("name,expected", [
    ("twitch", HostPolicy.TWITCH),
    ("Google", HostPolicy.GOOGLE),
    (" YOUTUBE ", HostPolicy.YOUTUBE),
    ("other", HostPolicy.OTHER),
  ])
  def test_from_name(self, name, expected):
    assert HostPolicy.from_name(name) is expected

  def test_from_name_unknown(self):
    with pytest.raises(ConfigurationError, match="expected one of: twitch, google, youtube, other"):
      HostPolicy.from_name("vimeo")


class TestBackoffConfig:
  """Test cases for BackoffConfig dataclass."""

  def test_defaults(self):
    config = BackoffConfig()
    assert config.hosts == {
      "twitch.tv": HostPolicy.TWITCH,
      "google.com": HostPolicy.GOOGLE,
      "youtube.com": HostPolicy.YOUTUBE,
    }
    assert set(config.max_attempts.values()) == {50}
    assert config.google_base == 2
    assert config.google_ceiling_seconds == 3600
    assert config.other_backoff_seconds == 5
    assert config.twitch_reset_header == "Ratelimit-Reset"
    assert config.match_subdomains is False

  def test_default_tables_are_not_shared(self):
    first = BackoffConfig()
    first.hosts["example.com"] = HostPolicy.GOOGLE
    assert "example.com" not in BackoffConfig().hosts

  def test_host_domains_are_normalized(self):
    config = BackoffConfig(hosts={" Twitch.TV ": HostPolicy.TWITCH})
    assert config.hosts == {"twitch.tv": HostPolicy.TWITCH}

  @pytest.mark.parametrize("kwargs,message", [
    ({"hosts": {"": HostPolicy.TWITCH}}, "Host domains cannot be empty"),
    ({"max_attempts": {HostPolicy.TWITCH: 5}}, "Max attempts missing"),
    ({"google_base": 0}, "at least 1"),
    ({"google_ceiling_seconds": 0}, "ceiling must be positive"),
    ({"other_backoff_seconds": 0}, "Fallback backoff must be positive"),
    ({"twitch_reset_header": ""}, "reset header name cannot be empty"),
    ({"timeout": 0}, "Timeout must be positive"),
    ({"max_connections": 0}, "Max connections must be positive"),
  ])
  def test_validation(self, kwargs, message):
    with pytest.raises(ConfigurationError, match=message):
      BackoffConfig(**kwargs)

  def test_negative_max_attempts(self):
    attempts = {policy: 50 for policy in HostPolicy}
    attempts[HostPolicy.YOUTUBE] = -1
    with pytest.raises(ConfigurationError, match="negative for policy 'youtube'"):
      BackoffConfig(max_attempts=attempts)

  def test_from_dict_replaces_hosts_and_merges_attempts(self):
    config = BackoffConfig.from_dict({
      "hosts": {"api.twitch.tv": "twitch"},
      "max_attempts": {"twitch": 5},
    })
    assert config.hosts == {"api.twitch.tv": HostPolicy.TWITCH}
    assert config.max_attempts[HostPolicy.TWITCH] == 5
    assert config.max_attempts[HostPolicy.OTHER] == 50

  def test_from_dict_rejects_non_dict_sections(self):
    with pytest.raises(ConfigurationError, match="Hosts section must be a dictionary"):
      BackoffConfig.from_dict({"hosts": ["twitch.tv"]})
    with pytest.raises(ConfigurationError, match="Max attempts section must be a dictionary"):
      BackoffConfig.from_dict({"max_attempts": 50})

  def test_from_dict_reports_config_file(self):
    with pytest.raises(ConfigurationError) as exc_info:
      BackoffConfig.from_dict({"timeout": 0}, "backoff.yaml")
    assert exc_info.value.config_file == "backoff.yaml"
    assert exc_info.value.field == "timeout"

  def test_from_file(self, tmp_path):
    (tmp_path / "custom.yaml").write_text("google_base: 3\n")
    assert BackoffConfig.from_file(tmp_path, "custom").google_base == 3


class TestBackoffRequest:
  """Test cases for BackoffRequest and its duplication result."""

  def test_method_is_uppercased(self):
    assert BackoffRequest("get", "https://twitch.tv/").method == "GET"

  def test_data_and_json_are_exclusive(self):
    with pytest.raises(ValueError, match="data and json"):
      BackoffRequest("POST", "https://google.com/", data=b"x", json={"x": 1})

  @pytest.mark.parametrize("data", [
    None,
    b"bytes",
    bytearray(b"bytes"),
    "text",
    {"form": "field"},
    [("form", "field")],
  ])
  def test_try_clone_replayable_bodies(self, data):
    request = BackoffRequest(
      "POST", URL("https://google.com/"), headers={"X-Test": "1"}, params={"q": "a"}, data=data
    )

    clone = request.try_clone()

    assert isinstance(clone, Duplicable)
    assert clone.request == request
    assert clone.request is not request

  def test_try_clone_copies_headers(self):
    request = BackoffRequest("GET", "https://twitch.tv/", headers={"Client-Id": "abc"})

    clone = request.try_clone()
    clone.request.headers["Client-Id"] = "changed"

    assert request.headers == {"Client-Id": "abc"}

  def test_try_clone_json_body(self):
    request = BackoffRequest("POST", "https://youtube.com/", json={"nested": [1, 2]})

    clone = request.try_clone()

    assert isinstance(clone, Duplicable)
    assert clone.request.json == {"nested": [1, 2]}
    assert clone.request.json is not request.json

  def test_try_clone_streamed_body(self):
    request = BackoffRequest("POST", "https://youtube.com/", data=io.BytesIO(b"stream"))

    clone = request.try_clone()

    assert isinstance(clone, NotDuplicable)
    assert "BytesIO" in clone.reason

  def test_try_clone_file_in_form_mapping(self, tmp_path):
    path = tmp_path / "upload.bin"
    path.write_bytes(b"payload")

    with open(path, "rb") as upload:
      request = BackoffRequest("POST", "https://google.com/u", data={"title": "a", "file": upload})
      clone = request.try_clone()

    assert isinstance(clone, NotDuplicable)
    assert "BufferedReader" in clone.reason

  def test_try_clone_stream_in_pair_list(self):
    reader = io.BufferedReader(io.BytesIO(b"payload"))
    request = BackoffRequest("POST", "https://google.com/u", data=[("title", "a"), ("file", reader)])

    clone = request.try_clone()

    assert isinstance(clone, NotDuplicable)
    assert "BufferedReader" in clone.reason

  def test_try_clone_nested_plain_values(self):
    request = BackoffRequest("POST", "https://google.com/u", data={"ids": [1, 2], "flag": True})

    assert isinstance(request.try_clone(), Duplicable)

  def test_to_kwargs_omits_unset_fields(self):
    request = BackoffRequest("GET", "https://twitch.tv/", headers={"Client-Id": "abc"})
    assert request.to_kwargs() == {"headers": {"Client-Id": "abc"}}

  def test_to_kwargs_includes_body(self):
    request = BackoffRequest("POST", "https://google.com/", params={"q": "a"}, json={"b": 1})
    assert request.to_kwargs() == {"params": {"q": "a"}, "json": {"b": 1}}
