from types import SimpleNamespace

from smb_taxflow.context import SessionContext


def test_scope_keeps_records_of_the_session_user() -> None:
    records = [
        SimpleNamespace(user_id="alice", n=1),
        SimpleNamespace(user_id="bob", n=2),
        SimpleNamespace(user_id="alice", n=3),
    ]
    ctx = SessionContext(user_id="alice")

    assert [r.n for r in ctx.scope(records)] == [1, 3]


def test_switch_client_scopes_to_the_client_and_back() -> None:
    """A CA working on a client sees the client's records only."""
    records = [SimpleNamespace(user_id="ca"), SimpleNamespace(user_id="client-7")]
    ca = SessionContext(user_id="ca", organization_id="org-1")

    on_client = ca.switch_client("client-7")

    assert on_client.effective_user_id == "client-7"
    assert [r.user_id for r in on_client.scope(records)] == ["client-7"]
    assert on_client.switch_client(None).effective_user_id == "ca"
    # The source context is unchanged.
    assert ca.ca_client_id is None
