from dexgrid.bot.events import Event, EventBus, EventType

def test_publish_reaches_subscribers_of_type():
    bus = EventBus()
    trades, states = [], []
    bus.subscribe(EventType.TRADE_EXECUTED, trades.append)
    bus.subscribe(EventType.STATE_CHANGED, states.append)

    bus.publish(Event(EventType.TRADE_EXECUTED, "t1"))

    assert [e.payload for e in trades] == ["t1"]
    assert states == []

def test_unsubscribe():
    bus = EventBus()
    received = []
    unsubscribe = bus.subscribe(EventType.TRADE_EXECUTED, received.append)
    assert bus.subscriber_count(EventType.TRADE_EXECUTED) == 1

    unsubscribe()
    unsubscribe()  # idempotent
    bus.publish(Event(EventType.TRADE_EXECUTED, "t1"))

    assert received == []
    assert bus.subscriber_count(EventType.TRADE_EXECUTED) == 0

def test_failing_handler_is_isolated():
    bus = EventBus()
    received = []

    def broken(event):
        raise ValueError("boom")

    bus.subscribe(EventType.STATE_CHANGED, broken)
    bus.subscribe(EventType.STATE_CHANGED, received.append)

    bus.publish(Event(EventType.STATE_CHANGED, {"running": True}))

    assert len(received) == 1
