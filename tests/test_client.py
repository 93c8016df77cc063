import heapq
import itertools
import random
from collections import defaultdict
from dataclasses import dataclass

from voxelkit.network.client import Client
from voxelkit.network.packet import deserialize_server_packet, serialize_packet
from voxelkit.network.server import ConnectedEvent, MessageEvent, Server
from voxelkit.network.transport import Socket
from voxelkit.network.types import (
    Challenge,
    ChallengeResponse,
    MessageDelivery,
    ReliableMessage,
    ToClientDisconnect,
    ToClientMessages,
    ToServerMessages,
    TryConnect,
    UnreliableMessage,
)

CLIENT_ADDR = ("127.0.0.1", 42)
SERVER_ADDR = ("127.0.0.1", 43)
OTHER_ADDR = ("127.0.0.1", 44)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@dataclass(frozen=True)
class LinkConfig:
    packet_loss: float
    latency: float
    max_jitter: float


NO_LOSS_CONFIG = LinkConfig(0.0, 0.03, 0.03)
INSTANT_CONFIG = LinkConfig(0.0, 0.0, 0.0)


class DummyNetwork:
    def __init__(self, clock, seed=0):
        self.clock = clock
        self.rng = random.Random(seed)
        self.queues = defaultdict(list)
        self.counter = itertools.count()

    def socket(self, addr, config):
        return DummySocket(self, addr, config)


class DummySocket(Socket):
    def __init__(self, network, addr, config):
        self.network = network
        self.addr = addr
        self.config = config

    def receive(self):
        queue = self.network.queues[self.addr]
        if queue and queue[0][0] < self.network.clock():
            _, _, sender, data = heapq.heappop(queue)
            return data, sender
        return None

    def send(self, data, addr):
        rng = self.network.rng
        if rng.uniform(0.0, 1.0) >= self.config.packet_loss:
            delay = rng.uniform(
                self.config.latency, self.config.latency + self.config.max_jitter
            )
            heapq.heappush(
                self.network.queues[addr],
                (self.network.clock() + delay, next(self.network.counter), self.addr, bytes(data)),
            )
        return True


def drain(sock):
    packets = []
    while (received := sock.receive()) is not None:
        packets.append(deserialize_server_packet(received[0]))
    return packets


def run_exchange(client, server, clock, delivery, step, max_steps=1000):
    """Run the 42/43 exchange; return the server event carrying 43, or None."""
    client.connect()
    for _ in range(max_steps):
        client.tick()
        if any(data == bytes([42]) for _, data in client.get_messages()):
            client.send_message(bytes([43]), delivery)
        server.tick()
        send_back = None
        for event in server.get_events():
            if isinstance(event, ConnectedEvent):
                send_back = event.id
            elif isinstance(event, MessageEvent) and event.data == bytes([43]):
                return event
        if send_back is not None:
            server.send_message(send_back, bytes([42]), delivery)
        clock.now += step
    return None


def test_connection_no_loss():
    clock = FakeClock()
    network = DummyNetwork(clock, 1)
    client = Client(network.socket(CLIENT_ADDR, NO_LOSS_CONFIG), SERVER_ADDR, clock=clock)
    server = Server(network.socket(SERVER_ADDR, NO_LOSS_CONFIG), clock=clock)
    received = run_exchange(client, server, clock, MessageDelivery.UNRELIABLE, 0.005)
    assert isinstance(received, MessageEvent)
    assert received.data == bytes([43])
    assert client.is_connected() is True


def test_connection_with_loss():
    config = LinkConfig(0.8, 0.1, 0.1)
    clock = FakeClock()
    network = DummyNetwork(clock, 7)
    client = Client(network.socket(CLIENT_ADDR, config), SERVER_ADDR, clock=clock)
    server = Server(network.socket(SERVER_ADDR, config), clock=clock)
    received = run_exchange(client, server, clock, MessageDelivery.ORDERED, 0.02)
    assert isinstance(received, MessageEvent)
    assert received.data == bytes([43])
    assert client.is_connected() is True


class Manual:
    """A client driven by hand-crafted server packets."""

    def __init__(self, clock=None, network=None, client=None):
        self.clock = clock if clock is not None else FakeClock()
        self.network = network if network is not None else DummyNetwork(self.clock)
        self.server_sock = self.network.socket(SERVER_ADDR, INSTANT_CONFIG)
        if client is None:
            client = Client(
                self.network.socket(CLIENT_ADDR, INSTANT_CONFIG), SERVER_ADDR, clock=self.clock
            )
        self.client = client

    def step(self):
        self.clock.now += 0.01
        self.client.tick()
        self.clock.now += 0.01
        return drain(self.server_sock)

    def reply(self, packet, sock=None):
        (sock or self.server_sock).send(serialize_packet(packet), CLIENT_ADDR)

    def client_salt(self):
        self.client.connect()
        packets = self.step()
        assert packets and isinstance(packets[0], TryConnect)
        return packets[0].client_salt

    def handshake(self, server_salt=7):
        salt = self.client_salt()
        self.reply(Challenge(salt, server_salt))
        responses = self.step()
        assert responses == [ChallengeResponse(salt ^ server_salt)]
        return salt ^ server_salt


def test_not_connected_before_connect():
    clock = FakeClock()
    network = DummyNetwork(clock)
    client = Client(network.socket(CLIENT_ADDR, INSTANT_CONFIG), SERVER_ADDR, clock=clock)
    manual = Manual(clock, network, client)
    assert client.is_connected() is False
    assert manual.step() == []


def test_handshake_and_unreliable_message():
    manual = Manual()
    salts_xor = manual.handshake()
    manual.reply(ToClientMessages(salts_xor, (UnreliableMessage(b"hi"),)))
    manual.step()
    assert manual.client.is_connected()
    assert list(manual.client.get_messages()) == [(MessageDelivery.UNRELIABLE, b"hi")]
    assert list(manual.client.get_messages()) == []


def test_ordered_messages_are_reassembled_in_order():
    manual = Manual()
    salts_xor = manual.handshake()
    manual.reply(
        ToClientMessages(salts_xor, (ReliableMessage(2, b"b"), ReliableMessage(1, b"a")))
    )
    manual.step()
    assert list(manual.client.get_messages()) == [
        (MessageDelivery.ORDERED, b"a"),
        (MessageDelivery.ORDERED, b"b"),
    ]


def test_ordered_send_after_connection():
    manual = Manual()
    salts_xor = manual.handshake()
    manual.reply(ToClientMessages(salts_xor))
    manual.step()
    manual.client.send_message(b"abc", MessageDelivery.ORDERED)
    packets = manual.step()
    sent = [
        message
        for packet in packets
        if isinstance(packet, ToServerMessages) and packet.salts_xor == salts_xor
        for message in packet.messages
    ]
    assert ReliableMessage(1, b"abc") in sent


def test_send_before_connection_is_dropped():
    manual = Manual()
    manual.client.send_message(b"early", MessageDelivery.ORDERED)
    salts_xor = manual.handshake()
    manual.reply(ToClientMessages(salts_xor))
    manual.step()
    packets = manual.step()
    reliable = [
        message
        for packet in packets
        for message in getattr(packet, "messages", ())
        if isinstance(message, ReliableMessage)
    ]
    assert reliable == []


def test_wrong_salt_is_ignored():
    manual = Manual()
    salts_xor = manual.handshake()
    manual.reply(ToClientMessages(salts_xor ^ 1, (UnreliableMessage(b"x"),)))
    manual.step()
    assert manual.client.is_connected() is False
    assert list(manual.client.get_messages()) == []


def test_packets_from_other_address_are_ignored():
    manual = Manual()
    salt = manual.client_salt()
    other = manual.network.socket(OTHER_ADDR, INSTANT_CONFIG)
    manual.reply(Challenge(salt, 5), sock=other)
    packets = manual.step()
    assert packets == [TryConnect(salt)]


def test_disconnect_during_connect():
    manual = Manual()
    salt = manual.client_salt()
    manual.reply(ToClientDisconnect(salt, "Server full"))
    manual.step()
    assert manual.step() == []
    assert manual.client.is_connected() is False


def test_disconnect_when_connected():
    manual = Manual()
    salts_xor = manual.handshake()
    manual.reply(ToClientMessages(salts_xor))
    manual.step()
    assert manual.client.is_connected()
    manual.reply(ToClientDisconnect(salts_xor, "bye"))
    manual.step()
    assert manual.client.is_connected() is False
    assert manual.step() == []


def test_connect_times_out():
    clock = FakeClock()
    network = DummyNetwork(clock)
    client = Client(network.socket(CLIENT_ADDR, INSTANT_CONFIG), SERVER_ADDR, clock=clock)
    manual = Manual(clock, network, client)
    manual.client_salt()
    clock.now += 5.1
    assert manual.step() == []
    assert manual.step() == []
    assert client.is_connected() is False


def test_connected_times_out():
    manual = Manual()
    salts_xor = manual.handshake()
    manual.reply(ToClientMessages(salts_xor))
    manual.step()
    assert manual.client.is_connected()
    manual.clock.now += 5.1
    manual.step()
    assert manual.client.is_connected() is False


def test_connect_is_ignored_while_connecting():
    manual = Manual()
    salt = manual.client_salt()
    manual.client.connect()
    assert manual.step() == [TryConnect(salt)]