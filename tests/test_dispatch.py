import json

import pytest

from ownmesh.dispatch import (
    SUBSCRIPTION_ID,
    DriverState,
    NostrAnnounce,
    NostrDriverConfig,
    SignalingEnvelope,
    resolve_relays,
)
from ownmesh.event import (
    SIGNALING_EVENT_KIND,
    NostrIdentity,
    make_event,
    now_secs,
    verify_event,
)
from ownmesh.local import DirectedToPeer, PeerAnnounced, PeerMessage
from ownmesh.messages import Announce, Candidate, DecodeError, Offer
from ownmesh.relays import DEFAULT_RELAY_URLS


def _state(**kwargs):
    return DriverState(device_id="self-device", room_handle="test-room", **kwargs)


def _frame(signer, envelope, created_at=1_700_000_000):
    event = make_event(
        signer,
        SIGNALING_EVENT_KIND,
        [["r", "test-room"]],
        envelope.to_json(),
        created_at,
    )
    return json.dumps(["EVENT", "sub-1", event.to_dict()]), event.id


def _announce_frame(signer, peer, created_at=1_700_000_000):
    envelope = SignalingEnvelope(sender=peer, msg=Announce(peer_id=peer))
    return _frame(signer, envelope, created_at)


@pytest.fixture(scope="module")
def peer_signer():
    return NostrIdentity.generate()


def test_duplicate_event_id_only_fires_inbound_once(peer_signer):
    state = _state()
    peer_pub = peer_signer.pubkey_hex()
    frame, event_id = _announce_frame(peer_signer, peer_pub)

    first = state.handle_inbound_frame("wss://relay-a", frame)
    second = state.handle_inbound_frame("wss://relay-b", frame)
    third = state.handle_inbound_frame("wss://relay-c", frame)

    assert first == PeerAnnounced(device_id=peer_pub)
    assert second is None
    assert third is None
    assert event_id in state.seen_event_ids


def test_distinct_events_each_fire_inbound(peer_signer):
    state = _state()
    peer_pub = peer_signer.pubkey_hex()
    frame1, id1 = _announce_frame(peer_signer, peer_pub, 1_700_000_000)
    frame2, id2 = _announce_frame(peer_signer, peer_pub, 1_700_000_005)
    assert id1 != id2

    assert state.handle_inbound_frame("wss://relay-a", frame1) == PeerAnnounced(peer_pub)
    assert state.handle_inbound_frame("wss://relay-a", frame2) == PeerAnnounced(peer_pub)


def test_seen_ring_bounded_at_capacity(peer_signer):
    state = _state(capacity=3)
    frames = [
        _announce_frame(peer_signer, "peer", 1_700_000_000 + i) for i in range(5)
    ]
    for frame, _ in frames:
        assert state.handle_inbound_frame("wss://relay-a", frame) == PeerAnnounced("peer")
    assert len(state.seen_event_ids) == 3
    assert state.seen_event_ids == tuple(event_id for _, event_id in frames[2:])
    # The oldest id rolled off, so its redelivery counts as fresh.
    assert state.handle_inbound_frame("wss://relay-b", frames[0][0]) == PeerAnnounced("peer")


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        _state(capacity=0)


def test_own_events_are_skipped():
    state = _state()
    event = state.build_announce_event()
    frame = json.dumps(["EVENT", "sub-1", event.to_dict()])
    assert state.handle_inbound_frame("wss://relay-a", frame) is None
    assert state.seen_event_ids == ()


def test_announce_for_own_device_id_is_skipped(peer_signer):
    state = _state()
    frame, _ = _announce_frame(peer_signer, "self-device")
    assert state.handle_inbound_frame("wss://relay-a", frame) is None


def test_directed_message_to_us_is_delivered(peer_signer):
    state = _state()
    offer = Offer(peer_id="alice", offer_id="o1", sdp="fake-sdp")
    frame, _ = _frame(peer_signer, SignalingEnvelope(sender="alice", msg=offer, to="self-device"))
    got = state.handle_inbound_frame("wss://relay-a", frame)
    assert got == PeerMessage(sender="alice", msg=offer)


def test_directed_message_to_other_is_dropped(peer_signer):
    state = _state()
    offer = Offer(peer_id="alice", offer_id="o1", sdp="fake-sdp")
    frame, _ = _frame(peer_signer, SignalingEnvelope(sender="alice", msg=offer, to="bob"))
    assert state.handle_inbound_frame("wss://relay-a", frame) is None


@pytest.mark.parametrize(
    "frame",
    ['["EOSE","sub-1"]', '["NOTICE","slow down"]', '["OK","abc",true,""]', "[]"],
)
def test_non_event_frames_deliver_nothing(frame):
    assert _state().handle_inbound_frame("wss://relay-a", frame) is None


@pytest.mark.parametrize(
    "frame",
    ["not json", '{"EVENT": 1}', '["EVENT","sub-1"]', '["EVENT","sub-1",{"id":"x"}]'],
)
def test_malformed_frames_raise_decode_error(frame):
    with pytest.raises(DecodeError):
        _state().handle_inbound_frame("wss://relay-a", frame)


def test_event_with_bad_envelope_raises(peer_signer):
    event = make_event(peer_signer, SIGNALING_EVENT_KIND, [["r", "test-room"]], "hello", 1)
    frame = json.dumps(["EVENT", "sub-1", event.to_dict()])
    with pytest.raises(DecodeError):
        _state().handle_inbound_frame("wss://relay-a", frame)


def test_envelope_round_trip_with_candidate():
    envelope = SignalingEnvelope(
        sender="alice",
        msg=Candidate(peer_id="alice", candidate="candidate:1 typ host", sdp_mline_index=0),
        to="bob",
    )
    assert SignalingEnvelope.from_json(envelope.to_json()) == envelope


def test_envelope_wire_shape_is_flattened():
    envelope = SignalingEnvelope(sender="alice", msg=Announce(peer_id="alice"))
    assert json.loads(envelope.to_json()) == {
        "from": "alice",
        "to": None,
        "kind": "announce",
        "peer_id": "alice",
    }


def test_envelope_missing_to_means_broadcast():
    got = SignalingEnvelope.from_json('{"from":"a","kind":"announce","peer_id":"a"}')
    assert got == SignalingEnvelope(sender="a", msg=Announce(peer_id="a"), to=None)


@pytest.mark.parametrize(
    "text",
    [
        "nope",
        "[1,2]",
        '{"kind":"announce","peer_id":"a"}',
        '{"from":"a","to":5,"kind":"announce","peer_id":"a"}',
        '{"from":"a","kind":"bogus"}',
    ],
)
def test_envelope_rejects_malformed(text):
    with pytest.raises(DecodeError):
        SignalingEnvelope.from_json(text)


def test_build_announce_event_is_signed_by_state_identity():
    state = _state()
    event = state.build_announce_event()
    assert verify_event(event)
    assert event.pubkey == state.identity.pubkey_hex()
    assert event.kind == SIGNALING_EVENT_KIND
    assert event.tags == [["r", "test-room"]]
    envelope = SignalingEnvelope.from_json(event.content)
    assert envelope == SignalingEnvelope(
        sender="self-device", msg=Announce(peer_id="self-device")
    )


def test_build_outbound_event_for_announce():
    state = _state()
    event = state.build_outbound_event(NostrAnnounce())
    assert SignalingEnvelope.from_json(event.content).msg == Announce(peer_id="self-device")


def test_build_outbound_event_directed():
    state = _state()
    offer = Offer(peer_id="self-device", offer_id="o1", sdp="fake-sdp")
    event = state.build_outbound_event(DirectedToPeer(to="bob", msg=offer))
    assert verify_event(event)
    envelope = SignalingEnvelope.from_json(event.content)
    assert envelope == SignalingEnvelope(sender="self-device", msg=offer, to="bob")


def test_build_outbound_event_rejects_other_types():
    with pytest.raises(TypeError):
        _state().build_outbound_event("announce")


def test_subscription_request_shape():
    before = now_secs()
    frame = _state().subscription_request()
    after = now_secs()
    tag, sub_id, filt = json.loads(frame)
    assert tag == "REQ"
    assert sub_id == SUBSCRIPTION_ID
    assert filt["kinds"] == [SIGNALING_EVENT_KIND]
    assert filt["#r"] == ["test-room"]
    assert before - 300 <= filt["since"] <= after - 300


def test_resolve_relays_defaults_exclude_denied():
    config = NostrDriverConfig(
        app_id="myownmesh-cloud-mesh-v1",
        network_id="office-mesh",
        device_id="dev",
        redundancy=3,
    )
    got = resolve_relays(config)
    assert len(got) == 3
    assert "wss://relay.damus.io" not in got
    assert all(url in DEFAULT_RELAY_URLS for url in got)
    assert resolve_relays(config) == got


def test_resolve_relays_all_defaults_minus_denied():
    config = NostrDriverConfig(app_id="app", network_id="n", device_id="d", redundancy=50)
    got = resolve_relays(config)
    assert sorted(got) == sorted(u for u in DEFAULT_RELAY_URLS if u != "wss://relay.damus.io")


def test_resolve_relays_custom_servers_and_denylist():
    config = NostrDriverConfig(
        app_id="app",
        network_id="n",
        device_id="d",
        redundancy=5,
        servers=["wss://a.example.com", "wss://bad.example.com/path"],
        denylist=["BAD.example.com"],
    )
    assert resolve_relays(config) == ["wss://a.example.com"]


def test_resolve_relays_zero_redundancy():
    config = NostrDriverConfig(app_id="app", network_id="n", device_id="d", redundancy=0)
    assert resolve_relays(config) == []