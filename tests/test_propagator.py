from minikv.propagator import CommandPropagator
from minikv.resp import encode_array


def test_propagates_to_every_replica():
    propagator = CommandPropagator()
    first, second = [], []
    propagator.add_replica(first.append)
    propagator.add_replica(second.append)
    command = encode_array(["SET", "k", "v"])

    propagator.propagate(command)

    assert first == [command]
    assert second == [command]


def test_failing_replica_is_dropped():
    propagator = CommandPropagator()
    received = []
    calls = []

    def broken(command):
        calls.append(command)
        raise BrokenPipeError("gone")

    propagator.add_replica(broken)
    propagator.add_replica(received.append)

    propagator.propagate("one")
    propagator.propagate("two")

    assert len(propagator) == 1
    assert calls == ["one"]
    assert received == ["one", "two"]


def test_remove_replica_stops_delivery():
    propagator = CommandPropagator()
    received = []
    propagator.add_replica(received.append)
    propagator.remove_replica(received.append)
    propagator.propagate("cmd")
    assert received == []
    assert len(propagator) == 0


def test_remove_unknown_replica_keeps_others():
    propagator = CommandPropagator()
    received = []
    propagator.add_replica(received.append)
    propagator.remove_replica(print)
    assert len(propagator) == 1