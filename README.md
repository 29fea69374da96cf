# ownmesh

Building blocks for a small peer-to-peer mesh: peers find each other
through Nostr relays, agree on who talks to whom without a coordinator,
and check each other with short human-readable codes.

The package is a library with no command-line entry point; import the
modules you need.

## What is inside

| Module | Purpose |
| --- | --- |
| `ownmesh.verification` | Six-character `[a-z0-9]` codes read aloud when two devices first meet (`generate_code`, `is_well_formed`). |
| `ownmesh.policy` | Decide whether a version bump may be applied automatically (`ApplyPolicy`, `compare_semver`, `policy_allows`). |
| `ownmesh.diag` | Per-peer transport counters (`IceCandidateKind`, `IceCandidateStats`, `SelectedCandidatePair`, `PeerDiag`). |
| `ownmesh.ice` | Classify an ICE candidate line as host, srflx, prflx or relay (`classify_candidate_sdp`). |
| `ownmesh.topology` | Deterministic choice of which peers get application traffic (`Topology`, `FullMeshSelector`, `RingSelector`, `select_ring_neighbors`). |
| `ownmesh.upstream` | Timing constants and the schedules built from them (`announce_wait_ms`, `resubscribe_backoff_ms`). |
| `ownmesh.messages` | Signaling messages (`Announce`, `Offer`, `Answer`, `Candidate`), `message_to_dict` / `message_from_dict`, `RelayHealth`, the `SignalingChannel` interface and the error types (`SignalingError`, `SocketError`, `DecodeError`, `EncodeError`, `NoRelaysError`). |
| `ownmesh.local` | In-process signaling broker for tests and embedded use (`LocalBroker`, `LocalPeer`). |
| `ownmesh.relay` | Tracks Nostr subscriptions on one socket and replays them after a reconnect, with anti-flood backoff (`SubscriptionReplay`, `ReplayDecision`). |
| `ownmesh.relays` | Default relay list and hostname denylist (`DEFAULT_RELAY_URLS`, `DEFAULT_DENYLIST`, `extract_host`, `is_denied`). |
| `ownmesh.handle` | Room handle derived from an app id and a network id (`derive_room_handle`). |
| `ownmesh.shuffle` | Deterministic top-N relay selection per app id (`select_top_n`). |
| `ownmesh.event` | NIP-01 events signed with BIP-340 Schnorr over secp256k1 (`NostrIdentity`, `NostrEvent`, `make_event`, `verify_event`, `now_secs`). |
| `ownmesh.dispatch` | Socket-free core of the driver: `NostrDriverConfig`, `SignalingEnvelope`, `resolve_relays` and `DriverState`, which builds events and the room subscription and routes inbound frames with de-duplication by event id. |
| `ownmesh.driver` | The asyncio Nostr signaling driver (`NostrDriver`, `start`, `short_relay_name`). |

## Examples

Verification codes:

```python
from ownmesh.verification import generate_code, is_well_formed

code = generate_code()
assert is_well_formed(code)
assert not is_well_formed("ABCDEF")
```

Update policy:

```python
from ownmesh.policy import ApplyPolicy, compare_semver, policy_allows

policy = ApplyPolicy.parse("minor")
policy_allows(policy, "0.1.5", "0.2.0")   # True
policy_allows(policy, "0.1.5", "1.0.0")   # False: major bumps need confirmation
compare_semver("1.2.3", "1.2.3-rc1")      # 1: a release outranks its pre-release
```

Ring topology: every peer runs the same selection over the same sorted
ring, so the two immediate neighbours always pick each other.

```python
from ownmesh.topology import select_ring_neighbors

select_ring_neighbors("a", ["b", "c", "d", "e"], 3)   # {"b", "e", "c"}
```

Room handles and relay choice agree across peers that share an app id:

```python
from ownmesh.handle import derive_room_handle
from ownmesh.shuffle import select_top_n

room = derive_room_handle("my-app-v1", "office-mesh")   # 64 hex chars
relays = select_top_n("my-app-v1", ["wss://a.example.com", "wss://b.example.com"], 1)
```

Signed events:

```python
from ownmesh.event import SIGNALING_EVENT_KIND, NostrIdentity, make_event, now_secs, verify_event

identity = NostrIdentity.generate()
event = make_event(identity, SIGNALING_EVENT_KIND, [["r", "room"]], "hello", now_secs())
assert verify_event(event)
```

## Signaling

`ownmesh.driver.start(config)` takes a `NostrDriverConfig` (`app_id`,
`network_id`, `device_id`, `redundancy`, and optional `servers` and
`denylist`) and must be called inside a running event loop. It picks
relays with `resolve_relays` (the configured servers, or the default
pool, minus denied hosts, shuffled per app id), keeps one connection
per relay, and reconnects failed relays with backoff capped at one
minute. A single announcer publishes presence immediately and then on
the schedule given by `announce_wait_ms`.

- `NostrDriver.send(outbound)` takes a `NostrAnnounce` or an
  `ownmesh.local.DirectedToPeer` and returns `False` when no relay
  session is ready and the event was dropped.
- `await NostrDriver.recv()` returns the next `PeerAnnounced` or
  `PeerMessage`. The same event delivered by several relays reaches the
  caller once; the driver's own events are ignored.
- `NostrDriver.stop()` cancels every task. The driver can also be used
  as an `async with` block, which starts it and stops it on exit.

For tests, or to wire two peers together in one process without a
relay, use `ownmesh.local.LocalBroker`: `join(room, device_id)` returns
a `LocalPeer` that is told about the peers already in the room (and
they about it). `LocalPeer.send` routes an `AnnounceOut`,
`DirectedToPeer` or `LeaveOut` and returns how many peers received it;
`await LocalPeer.recv()` yields `PeerAnnounced`, `PeerMessage` or
`PeerLeft`; `close()` (or leaving a `with` block) leaves the room and
tells the others.

## What it does not do

- It does not open WebRTC peer connections or data channels. `diag` and
  `ice` only count and classify candidates that some other transport
  reports.
- It does not download, verify or install updates. `policy` only says
  whether a given version bump would be allowed.
- It has no mesh engine tying these pieces together, no storage of
  configuration or identities, and no command-line tool.

## Testing

The test suite uses pytest and pytest-asyncio, installed through the
`test` extra:

```
pip install -e ".[test]"
pytest
```