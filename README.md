# voxelkit

Building blocks for a networked voxel game:

- `voxelkit.network` is a small connection protocol for UDP. It covers a
  salted handshake, CRC32-checked packets of at most 1200 bytes, a 5 second
  timeout, and two kinds of delivery: unreliable messages, and ordered reliable
  messages that are acknowledged and resent.
- `voxelkit.quint` holds UI primitives: sizes and positions, computed layouts,
  mouse events, and a chainable flexbox-style `Style`.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Networking

### Client and server

`Server` (in `voxelkit.network.server`) and `Client` (in
`voxelkit.network.client`) each take an object that implements the `Socket`
interface from `voxelkit.network.transport`. `UdpSocket` wraps an
operating-system socket that you create and bind yourself. Make that socket
non-blocking (or give it a timeout) so that `tick()` returns when no packets are
waiting.

Call `tick()` on each side regularly. One tick reads every waiting packet,
moves the handshake forward, handles timeouts and sends whatever is queued.

```python
import socket

from voxelkit.network.client import Client
from voxelkit.network.server import ConnectedEvent, MessageEvent, Server
from voxelkit.network.transport import UdpSocket
from voxelkit.network.types import MessageDelivery


def udp(port):
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", port))
    sock.setblocking(False)
    return UdpSocket(sock)


server = Server(udp(4300))
client = Client(udp(4301), ("127.0.0.1", 4300))
client.connect()

for _ in range(1000):
    client.tick()
    server.tick()
    for event in server.get_events():
        if isinstance(event, ConnectedEvent):
            server.send_message(event.id, b"\x2a", MessageDelivery.ORDERED)
        elif isinstance(event, MessageEvent):
            print(event.source_id, event.kind, event.data)
    for delivery, data in client.get_messages():
        client.send_message(data, delivery)
```

Details:

- The server has ten client slots. A connection attempt that arrives when all
  slots are full is ignored.
- A client is identified by its address. The server reports
  `ConnectedEvent`, `DisconnectedEvent` and `MessageEvent` through
  `get_events()`. That call returns the gathered events and clears them.
- `Client.get_messages()` returns `(MessageDelivery, bytes)` pairs and clears
  them. `Client.is_connected()` tells whether the handshake has completed.
- `send_message` on either side is ignored until the peer is connected.
- `MessageDelivery.UNRELIABLE` messages can be lost. Each
  `MessageDelivery.ORDERED` message arrives exactly once, in the order it was
  sent relative to the other ordered messages.
- `Client` and `Server` take an optional `clock` (it defaults to
  `time.monotonic`), which lets you drive timeouts and resends by hand.
- `UdpSocket` can be used as a context manager that closes the socket, and its
  `address` property gives the bound address.

### Lower layers

- `voxelkit.network.packet` has `serialize_packet`, `deserialize_client_packet`
  and `deserialize_server_packet`. They raise `PacketError` when a packet is
  too large, too short, malformed or has a bad checksum.
- `voxelkit.network.types` defines the packet and message dataclasses
  (`TryConnect`, `Challenge`, `ChallengeResponse`, `ToClientMessages`,
  `ToServerMessages`, `ToClientDisconnect`, `ToServerDisconnect`,
  `UnreliableMessage`, `ReliableMessage`, `ReliableAcksMessage`),
  `SimpleBitSet` (with `from_bits` and `to_bits`) and the protocol constants.
- `voxelkit.network.channel` has `Sender` and `Receiver`, the reliable
  channel on its own. `Sender` queues data, offers due packets every
  `tick(send_message)`, and drops them on `receive_acks`. `Receiver` buffers
  out-of-order data and hands it back in order through `get_message()`.
  `get_acks()` returns the acknowledgement bits.

## UI primitives

```python
from voxelkit.quint.events import ButtonState, MouseButton, MouseInput
from voxelkit.quint.geometry import Position, Size
from voxelkit.quint.layout import Layout
from voxelkit.quint.style import Style

style = Style().vertical().center_cross().percent_size(1.0, 0.5)

box = Layout(x=10, y=10, width=100, height=50)
inner = box.with_padding(5)
inner.is_position_inside(Position(20, 20))   # True

click = MouseInput(ButtonState.PRESSED, MouseButton.LEFT)
extra = MouseButton.other(4)
```

`Style` is immutable. Every method returns a new style. Its fields are
`flex_wrap`, `flex_direction`, `align_items`, `justify_content`, `width` and
`height`, and the last two are `Dimension` values.

## What the package does not do

- It contains no game server or client program and provides no commands. The
  network layer only moves bytes between peers.
- `voxelkit.quint` does not compute layouts, keep widget trees or render
  anything. `Style` only describes a flexbox style. `Layout` values have to be
  produced by a layout engine of your choice.
- There is no rate control. Every queued message is sent on each tick.