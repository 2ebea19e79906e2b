"""Tests for rtmpfilter.dialect."""

import pytest

from rtmpfilter.config import FilterConfig
from rtmpfilter.dialect import (
    derive_caption_url,
    derive_hls,
    format_rtmp,
    has_hls_fallback,
    is_formatted,
)
from rtmpfilter.models import SourceURL

WSE = FilterConfig(hls_urlfmt="wse", https=True)
FMS = FilterConfig(hls_urlfmt="fms", https=True)


class TestFormatRtmp:
    """Tests for the RTMP player form."""

    @pytest.mark.parametrize(
        ("url", "mimetype", "expected_url", "expected_type"),
        [
            ("rtmp://host/vod/clip.mp4", "video/mp4", "rtmp://host/vod/&mp4:clip.mp4", "rtmp/mp4"),
            ("rtmp://host/vod/clip.f4v", "video/mp4", "rtmp://host/vod/&mp4:clip.f4v", "rtmp/mp4"),
            ("rtmp://host/vod/clip.flv", "video/x-flv", "rtmp://host/vod/&flv:clip.flv", "rtmp/x-flv"),
            ("rtmp://host/vod/song.mp3", "audio/mp3", "rtmp://host/vod/&mp3:song.mp3", "rtmp/mp3"),
        ],
    )
    def test_inserts_codec_token_and_switches_type(
        self, url: str, mimetype: str, expected_url: str, expected_type: str
    ) -> None:
        """Codec token goes after the application segment; type moves to rtmp/."""
        result = format_rtmp(SourceURL(url, mimetype))
        assert result.src == expected_url
        assert result.type == expected_type

    def test_token_lands_after_application_with_subfolders(self) -> None:
        """Only server and application precede the token."""
        result = format_rtmp(SourceURL("rtmp://host/vod/course/week1/clip.mp4", "video/mp4"))
        assert result.src == "rtmp://host/vod/&mp4:course/week1/clip.mp4"

    def test_keeps_existing_token(self) -> None:
        """Already formatted URLs are not prefixed twice."""
        result = format_rtmp(SourceURL("rtmp://host/vod/&mp4:clip.mp4", "video/mp4"))
        assert result.src == "rtmp://host/vod/&mp4:clip.mp4"
        assert is_formatted(result.src)

    def test_bare_codec_prefix_gets_ampersand(self) -> None:
        """A stream already written as mp4:name only gains the separator."""
        result = format_rtmp(SourceURL("rtmp://host/vod/mp4:clip.mp4", "video/mp4"))
        assert result.src == "rtmp://host/vod/&mp4:clip.mp4"

    def test_encoded_spaces_become_spaces(self) -> None:
        """Both + and %20 turn into literal spaces."""
        result = format_rtmp(SourceURL("rtmp://host/vod/my+first%20clip.mp4", "video/mp4"))
        assert result.src == "rtmp://host/vod/&mp4:my first clip.mp4"
        assert result.type == "rtmp/mp4"

    def test_mp3_with_plus_plays_as_mp4(self) -> None:
        """mp3 streams with encoded spaces use the mp4 demuxer."""
        result = format_rtmp(SourceURL("rtmp://host/vod/my+song.mp3", "audio/mp3"))
        assert result.type == "rtmp/mp4"
        assert result.src == "rtmp://host/vod/&mp3:my song.mp3"

    def test_unknown_extension_unchanged(self) -> None:
        """Sources without a known container are returned as-is."""
        source = SourceURL("rtmp://host/vod/clip.ogg", "video/ogg")
        assert format_rtmp(source) == source

    def test_keeps_title(self) -> None:
        """Title travels with the source."""
        result = format_rtmp(SourceURL("rtmp://host/vod/clip.mp4", "video/mp4", "Clip"))
        assert result.title == "Clip"


class TestDeriveHls:
    """Tests for HLS fallback derivation."""

    def test_wse_mp4(self) -> None:
        """Wowza form: _definst_ instance and /playlist.m3u8 suffix."""
        rtmp = format_rtmp(SourceURL("rtmp://host/vod/clip.mp4", "video/mp4"))
        hls = derive_hls(rtmp, WSE)
        assert hls.src == "https://host/vod/_definst_/mp4:clip.mp4/playlist.m3u8"
        assert hls.type == "video/mp4"

    def test_fms_mp4(self) -> None:
        """Adobe form: token separator removed and .m3u8 appended."""
        rtmp = format_rtmp(SourceURL("rtmp://host/vod/clip.mp4", "video/mp4"))
        hls = derive_hls(rtmp, FMS)
        assert hls.src == "https://host/vod/mp4:clip.mp4.m3u8"
        assert hls.type == "video/mp4"

    def test_http_protocol(self) -> None:
        """https=False selects plain http."""
        rtmp = format_rtmp(SourceURL("rtmp://host/vod/clip.mp4", "video/mp4"))
        hls = derive_hls(rtmp, FilterConfig(https=False))
        assert hls.src.startswith("http://host/")

    def test_mp3_is_audio(self) -> None:
        """mp3 fallbacks are audio/mp3."""
        rtmp = format_rtmp(SourceURL("rtmp://host/vod/song.mp3", "audio/mp3"))
        hls = derive_hls(rtmp, WSE)
        assert hls.src == "https://host/vod/_definst_/mp3:song.mp3/playlist.m3u8"
        assert hls.type == "audio/mp3"

    def test_flv_maps_to_mp4(self) -> None:
        """FLV derivations use the mp4 stream token and type."""
        rtmp = format_rtmp(SourceURL("rtmp://host/vod/clip.flv", "video/x-flv"))
        hls = derive_hls(rtmp, WSE)
        assert hls.src == "https://host/vod/_definst_/mp4:clip.flv/playlist.m3u8"
        assert hls.type == "video/mp4"

    def test_flv_has_no_fallback(self) -> None:
        """FLV never gets a playable HLS source."""
        assert not has_hls_fallback(SourceURL("rtmp://host/vod/&flv:clip.flv", "rtmp/x-flv"))
        assert has_hls_fallback(SourceURL("rtmp://host/vod/&mp4:clip.mp4", "rtmp/mp4"))

    def test_rtmp_form_does_not_depend_on_dialect(self) -> None:
        """Switching dialect changes only HLS and caption URLs."""
        source = SourceURL("rtmp://host/vod/clip.mp4", "video/mp4")
        rtmp = format_rtmp(source)
        assert derive_hls(rtmp, WSE).src != derive_hls(rtmp, FMS).src
        assert format_rtmp(source) == rtmp


class TestDeriveCaptionUrl:
    """Tests for caption URL derivation."""

    @pytest.mark.parametrize(
        ("url", "mimetype", "expected"),
        [
            ("rtmp://host/vod/folder/clip.mp4", "video/mp4", "https://host/vod/_definst_/folder/clip.vtt"),
            ("rtmp://host/vod/clip.flv", "video/x-flv", "https://host/vod/_definst_/clip.vtt"),
            ("rtmp://host/vod/clip.f4v", "video/mp4", "https://host/vod/_definst_/clip.vtt"),
            ("rtmp://host/vod/song.mp3", "audio/mp3", "https://host/vod/_definst_/song.vtt"),
        ],
    )
    def test_wse(self, url: str, mimetype: str, expected: str) -> None:
        """Wowza captions sit beside the media file."""
        hls = derive_hls(format_rtmp(SourceURL(url, mimetype)), WSE)
        assert derive_caption_url(hls, WSE) == expected

    def test_fms_uses_vtt_subdirectory(self) -> None:
        """Adobe captions live in a vtt/ folder next to the media."""
        hls = derive_hls(format_rtmp(SourceURL("rtmp://host/vod/folder/clip.mp4", "video/mp4")), FMS)
        assert derive_caption_url(hls, FMS) == "https://host/vod/folder/vtt/clip.vtt"
