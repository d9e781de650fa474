from peer_links import LinkState, PeerLinkTable


def test_unknown_peer_is_absent():
    links = PeerLinkTable()
    assert links.state("x") == LinkState.ABSENT
    assert links.peers() == []


def test_full_lifecycle():
    links = PeerLinkTable()
    assert links.open("x")
    assert links.state("x") == LinkState.NEGOTIATING
    assert links.establish("x")
    assert links.state("x") == LinkState.ESTABLISHED
    assert links.close("x")
    assert links.state("x") == LinkState.CLOSED


def test_transitions_are_idempotent():
    links = PeerLinkTable()
    assert links.open("x")
    assert not links.open("x")
    assert links.establish("x")
    assert not links.establish("x")
    assert not links.open("x")
    assert links.close("x")
    assert not links.close("x")


def test_invalid_transitions_change_nothing():
    links = PeerLinkTable()
    assert not links.establish("x")
    assert not links.close("x")
    assert links.state("x") == LinkState.ABSENT


def test_closed_link_can_reopen():
    links = PeerLinkTable()
    links.open("x")
    links.close("x")
    assert links.open("x")
    assert links.state("x") == LinkState.NEGOTIATING


def test_close_all_and_peers_by_state():
    links = PeerLinkTable()
    links.open("a")
    links.open("b")
    links.establish("b")
    links.open("c")
    links.close("c")

    assert sorted(links.peers(LinkState.NEGOTIATING)) == ["a"]
    assert links.peers(LinkState.ESTABLISHED) == ["b"]
    assert sorted(links.close_all()) == ["a", "b"]
    assert links.peers(LinkState.CLOSED) == ["a", "b", "c"]
