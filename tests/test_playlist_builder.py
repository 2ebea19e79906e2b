"""Tests for rtmpfilter.playlist_builder."""

import html
import json

import pytest

from rtmpfilter.config import FilterConfig
from rtmpfilter.playlist_builder import (
    CLIENT_MODULE,
    PageRequirements,
    PlaylistBuilder,
    PlaylistEntry,
    client_params,
    is_built,
)
from rtmpfilter.tokens import MediaOpen

SETUP = html.escape(json.dumps({"language": "en", "width": 640, "height": 360}), quote=True)
SOURCE_A = '<source src="rtmp://h/vod/&mp4:a.mp4" type="rtmp/mp4" title="Part A" />'
HLS_A = '<source src="https://h/vod/_definst_/mp4:a.mp4/playlist.m3u8" type="video/mp4" />'
TRACK_A = '<track kind="captions" src="https://h/vod/_definst_/a.vtt" srclang="en" label="English" default="">'
SOURCE_B = '<source src="rtmp://h/vod/&flv:b.flv" type="rtmp/x-flv" />'
TRACK_B = '<track kind="captions" src="https://h/vod/_definst_/b.vtt" srclang="en" label="English" default="">'

PLAYLIST = (
    f'<video id="p1" class="video-js rtmp-playlist" data-setup="{SETUP}">'
    f"{SOURCE_A}{HLS_A}{TRACK_A}{SOURCE_B}{TRACK_B}</video>"
)


class TestClientParams:
    def test_defaults(self, config: FilterConfig) -> None:
        assert client_params(config) == {
            "httprotocol": "https",
            "hlsfallback": "1",
            "hlsurl": "/playlist.m3u8",
            "defaultcc": "1",
        }

    def test_fms_without_fallback(self) -> None:
        params = client_params(FilterConfig(hls_urlfmt="fms", hls_fallback=False, https=False))
        assert params["hlsurl"] == ".m3u8"
        assert params["hlsfallback"] == "0"
        assert params["httprotocol"] == "http"


class TestPlaylistEntry:
    def test_first_entry_is_current(self) -> None:
        assert PlaylistEntry(0, "rtmp://h/vod/&mp4:a.mp4", "A & B").render() == (
            '<li><a class="vjs-track currentTrack" data-index="0" '
            'data-src="rtmp://h/vod/&mp4:a.mp4">A &amp; B</a></li>'
        )
        assert 'class="vjs-track" data-index="3"' in PlaylistEntry(3, "x", "x").render()


class TestPlaylistBuilder:
    """Tests for playlist restructuring."""

    def test_builds_player_and_list(
        self, config: FilterConfig, requirements: PageRequirements
    ) -> None:
        """The first stream stays inline; every stream is listed after the player."""
        result = PlaylistBuilder(config, requirements).build(PLAYLIST)

        assert result == (
            f'<video id="p1-video-playlist" class="video-js rtmp-playlist video-playlist" '
            f'data-setup="{SETUP}">'
            f"{SOURCE_A}{HLS_A}{TRACK_A}</video>"
            '<div id="p1-video-playlist-vjs-playlist" class="vjs-playlist"><ul>'
            '<li><a class="vjs-track currentTrack" data-index="0" '
            'data-src="rtmp://h/vod/&mp4:a.mp4">Part A</a></li>'
            '<li><a class="vjs-track" data-index="1" '
            'data-src="rtmp://h/vod/&flv:b.flv">b.flv</a></li>'
            "</ul></div>"
        )

    def test_requests_client_module_once(
        self, config: FilterConfig, requirements: PageRequirements
    ) -> None:
        builder = PlaylistBuilder(config, requirements)
        builder.build(PLAYLIST + PLAYLIST.replace('id="p1"', 'id="p2"'))
        assert builder.built == 2
        assert requirements.modules == [(CLIENT_MODULE, client_params(config))]

    def test_audio_becomes_video(self, config: FilterConfig, requirements: PageRequirements) -> None:
        """Audio playlists are converted to video tags with video player setup."""
        text = PLAYLIST.replace("<video", "<audio").replace("</video>", "</audio>")
        result = PlaylistBuilder(config, requirements).build(text)

        assert result.startswith('<video id="p1-video-playlist"')
        assert "<audio" not in result
        assert "</audio>" not in result
        setup = html.escape(
            json.dumps(
                {"language": "en", "techOrder": ["flash", "html5"], "width": 640, "height": 360}
            ),
            quote=True,
        )
        assert f'data-setup="{setup}"' in result

    def test_generated_id(self, config: FilterConfig, requirements: PageRequirements) -> None:
        text = PLAYLIST.replace('id="p1" ', "")
        result = PlaylistBuilder(config, requirements).build(text)
        assert result.startswith('<video class="video-js rtmp-playlist video-playlist"')
        assert 'id="rtmp_playlist_1-video-playlist"' in result
        assert 'id="rtmp_playlist_1-video-playlist-vjs-playlist"' in result

    def test_unmarked_tags_untouched(
        self, config: FilterConfig, requirements: PageRequirements
    ) -> None:
        text = PLAYLIST.replace(" rtmp-playlist", "")
        assert PlaylistBuilder(config, requirements).build(text) == text
        assert requirements.modules == []

    def test_playlist_without_streams_untouched(
        self, config: FilterConfig, requirements: PageRequirements
    ) -> None:
        text = f'<video class="video-js rtmp-playlist">{HLS_A}</video>'
        assert PlaylistBuilder(config, requirements).build(text) == text
        assert requirements.modules == []

    def test_disabled_types_are_not_listed(self, requirements: PageRequirements) -> None:
        """Streams of disabled types are not entries and stay inline."""
        config = FilterConfig(enable_audio=False)
        text = (
            '<video class="video-js rtmp-playlist">'
            '<source src="rtmp://h/vod/&mp3:t.mp3" type="rtmp/mp3" />'
            f"{SOURCE_A}</video>"
        )
        result = PlaylistBuilder(config, requirements).build(text)
        assert result.count("<li>") == 1
        assert 'src="rtmp://h/vod/&mp3:t.mp3"' in result


    def test_fallback_must_follow_kept_stream(
        self, config: FilterConfig, requirements: PageRequirements
    ) -> None:
        """An FLV first stream has no fallback, so a later stream's fallback is not kept inline."""
        text = (
            '<video id="p1" class="video-js rtmp-playlist">'
            f"{SOURCE_B}{TRACK_B}{SOURCE_A}{HLS_A}{TRACK_A}</video>"
        )
        result = PlaylistBuilder(config, requirements).build(text)

        player = result.split("</video>", 1)[0]
        assert player.endswith(f"{SOURCE_B}{TRACK_B}")
        assert HLS_A not in result
        assert result.count("<li>") == 2

    def test_built_playlists_are_not_rebuilt(
        self, config: FilterConfig, requirements: PageRequirements
    ) -> None:
        once = PlaylistBuilder(config, requirements).build(PLAYLIST)

        builder = PlaylistBuilder(config, PageRequirements())
        assert builder.build(once) == once
        assert builder.built == 0

    @pytest.mark.parametrize(
        "tag",
        [
            '<video id="x-video-playlist" class="video-js rtmp-playlist">',
            '<video class="video-js rtmp-playlist video-playlist">',
        ],
    )
    def test_is_built(self, tag: str) -> None:
        assert is_built(MediaOpen.parse(tag))

    def test_is_not_built(self) -> None:
        assert not is_built(MediaOpen.parse('<video id="x" class="video-js rtmp-playlist">'))


class TestPageRequirements:
    def test_deduplicates(self) -> None:
        requirements = PageRequirements()
        requirements.load_module("m", {"a": "1"})
        requirements.load_module("m", {"a": "1"})
        requirements.load_module("m", {"a": "2"})
        assert requirements.modules == [("m", {"a": "1"}), ("m", {"a": "2"})]
