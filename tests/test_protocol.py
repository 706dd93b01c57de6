"""Tests for the art-app message codec."""

from __future__ import annotations

import json

import pytest

from frameclient.protocol import (
    ApiVersionReported,
    ArtModeChanged,
    ArtModeStatus,
    ContentListReported,
    CurrentArtwork,
    DeviceInfoReported,
    FavoriteChanged,
    FilterListReported,
    GoToStandby,
    ImageAdded,
    ImageSelected,
    ImagesDeleted,
    MatteListReported,
    RequestError,
    RotationImageChanged,
    ThumbnailReady,
    UnknownArtEvent,
    UploadReady,
    build_request,
    parse_art_event,
    parse_envelope,
)


def _service(event: str, **fields) -> str:
    return json.dumps({"event": event, **fields})


class TestBuildRequest:
    def test_envelope_shape(self):
        frame = json.loads(build_request("get_device_info", "sess-1"))
        assert frame["method"] == "ms.channel.emit"
        assert frame["params"]["event"] == "art_app_request"
        assert frame["params"]["to"] == "host"
        data = json.loads(frame["params"]["data"])
        assert data == {"request": "get_device_info", "id": "sess-1"}

    def test_params_included(self):
        frame = json.loads(build_request("set_artmode_status", "sess-1", value="on"))
        data = json.loads(frame["params"]["data"])
        assert data["value"] == "on"
        assert data["request"] == "set_artmode_status"

    def test_compact_encoding(self):
        text = build_request("get_api_version", "abc")
        assert ", " not in text
        assert ": " not in text

    def test_session_id_wins_over_params(self):
        frame = json.loads(build_request("x", "sess-1", id="spoofed"))
        assert json.loads(frame["params"]["data"])["id"] == "sess-1"


class TestParseEnvelope:
    def test_valid(self):
        env = parse_envelope('{"event": "ms.channel.ready", "data": {}}')
        assert env.event == "ms.channel.ready"
        assert env.data == {}

    def test_malformed_returns_none(self):
        assert parse_envelope("{not json") is None

    def test_non_object_returns_none(self):
        assert parse_envelope("[1, 2, 3]") is None

    def test_missing_event_tag(self):
        env = parse_envelope('{"data": 1}')
        assert env.event == ""


class TestParseArtEvent:
    def test_artmode_status(self):
        assert parse_art_event(_service("artmode_status", value="on")) == ArtModeStatus(on=True)
        assert parse_art_event(_service("artmode_status", value="off")) == ArtModeStatus(on=False)

    def test_art_mode_changed(self):
        assert parse_art_event(_service("art_mode_changed", status="on")) == ArtModeChanged(on=True)

    def test_favorite_changed(self):
        event = parse_art_event(_service("favorite_changed", content_id="MY_F0001", status="on"))
        assert event == FavoriteChanged(content_id="MY_F0001", on=True)

    def test_device_info_strips_echo_fields(self):
        event = parse_art_event(_service(
            "get_device_info", id="sess", target_client_id="abc", FrameTVSupport="true", name="Frame",
        ))
        assert event == DeviceInfoReported(info={"FrameTVSupport": "true", "name": "Frame"})

    def test_rotation_image_changed(self):
        event = parse_art_event(_service(
            "auto_rotation_image_changed", current_content_id="MY_F0002", type="shuffle",
        ))
        assert event == RotationImageChanged(content_id="MY_F0002", kind="shuffle")

    def test_api_version(self):
        assert parse_art_event(_service("api_version", version="4.3.4.0")) == ApiVersionReported("4.3.4.0")

    def test_current_artwork(self):
        event = parse_art_event(_service(
            "current_artwork", content_id="SAM-1", matte_id="none", portrait_matte_id="flexible_black",
        ))
        assert event == CurrentArtwork("SAM-1", "none", "flexible_black")

    def test_content_list_nested_json(self):
        items = [{"content_id": "MY_F0001", "category_id": "MY-C0002"}]
        event = parse_art_event(_service("content_list", content_list=json.dumps(items)))
        assert event == ContentListReported(items=items)

    def test_content_list_malformed_nested_json(self):
        event = parse_art_event(_service("content_list", content_list="[oops"))
        assert event == ContentListReported(items=[])

    def test_matte_list(self):
        colors = [{"color": "black"}]
        types = [{"matte_type": "shadowbox"}]
        event = parse_art_event(_service(
            "matte_list", matte_color_list=json.dumps(colors), matte_type_list=json.dumps(types),
        ))
        assert event == MatteListReported(mattes=colors, matte_types=types)

    def test_filter_list(self):
        filters = [{"filter_id": "ink"}]
        event = parse_art_event(_service("get_photo_filter_list", filter_list=json.dumps(filters)))
        assert event == FilterListReported(filters=filters)

    def test_image_selected(self):
        event = parse_art_event(_service("image_selected", content_id="MY_F0003", is_shown="Yes"))
        assert event == ImageSelected(content_id="MY_F0003", is_shown="Yes")

    def test_thumbnail(self):
        conn_info = json.dumps({"ip": "10.0.0.5", "port": "34567"})
        assert parse_art_event(_service("thumbnail", conn_info=conn_info)) == ThumbnailReady("10.0.0.5", 34567)

    def test_ready_to_use(self):
        conn_info = json.dumps({"ip": "10.0.0.5", "port": 40000, "key": "sekrit"})
        event = parse_art_event(_service("ready_to_use", conn_info=conn_info))
        assert event == UploadReady(ip="10.0.0.5", port=40000, key="sekrit")

    def test_ready_to_use_bad_port(self):
        conn_info = json.dumps({"ip": "10.0.0.5", "port": "nope"})
        assert parse_art_event(_service("ready_to_use", conn_info=conn_info)).port == 0

    def test_image_added(self):
        event = parse_art_event(_service("image_added", content_id="MY_F0009"))
        assert event == ImageAdded(content_id="MY_F0009", category_id="")

    def test_images_deleted(self):
        ids = json.dumps([{"content_id": "MY_F0001"}, {"content_id": "MY_F0002"}])
        event = parse_art_event(_service("image_list_deleted", content_id_list=ids))
        assert event == ImagesDeleted(content_ids=["MY_F0001", "MY_F0002"])

    def test_request_error(self):
        req = json.dumps({"request": "select_image", "content_id": "X"})
        event = parse_art_event(_service("error", error_code="-1", request_data=req))
        assert event == RequestError(error_code="-1", request_data={"request": "select_image", "content_id": "X"})

    def test_go_to_standby(self):
        assert parse_art_event(_service("go_to_standby")) == GoToStandby()

    def test_unknown_tag(self):
        event = parse_art_event(_service("brand_new_event", foo=1))
        assert isinstance(event, UnknownArtEvent)
        assert event.tag == "brand_new_event"
        assert event.data["foo"] == 1

    def test_already_decoded_mapping(self):
        assert parse_art_event({"event": "api_version", "version": "1"}) == ApiVersionReported("1")

    @pytest.mark.parametrize("data", ["{broken", "[1]", None, 42])
    def test_malformed_returns_none(self, data):
        assert parse_art_event(data) is None
