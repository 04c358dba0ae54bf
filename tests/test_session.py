import pytest

from pointcloudviewer.controller.session import LoadCoordinator, LoadSession, LoadTicket
from pointcloudviewer.model.errors import ContractViolationError
from pointcloudviewer.model.io import FileInfo
from pointcloudviewer.model.pipeline import process_point_cloud, recolor
from pointcloudviewer.model.pointcloud import ColorMode


def make_info(name="cloud.xyz"):
    return FileInfo(path=f"/data/{name}", name=name, type="XYZ", size="1.00 KB")


def make_bundle(generation, raw=((0, 0, 0), (1, 1, 2))):
    return process_point_cloud(list(raw), generation=generation)


@pytest.fixture
def coordinator():
    return LoadCoordinator()


def test_generations_increase(coordinator):
    first = coordinator.begin(make_info("a.xyz"), ColorMode.ALTITUDE)
    second = coordinator.begin(make_info("b.xyz"), ColorMode.UNIFORM)

    assert second.generation > first.generation
    assert coordinator.latest_generation == second.generation
    assert second.color_mode == ColorMode.UNIFORM
    assert second.path == "/data/b.xyz"
    assert coordinator.pending


def test_latest_result_is_installed(coordinator):
    ticket = coordinator.begin(make_info(), ColorMode.ALTITUDE)

    session = coordinator.accept(ticket.generation, make_bundle(ticket.generation))

    assert session is coordinator.current
    assert session.generation == ticket.generation
    assert session.file_info.name == "cloud.xyz"
    assert not coordinator.pending


def test_stale_result_is_discarded(coordinator):
    old = coordinator.begin(make_info("old.xyz"), ColorMode.ALTITUDE)
    new = coordinator.begin(make_info("new.xyz"), ColorMode.ALTITUDE)

    # The superseded load finishes last and must never be shown
    installed = coordinator.accept(new.generation, make_bundle(new.generation))
    stale = coordinator.accept(old.generation, make_bundle(old.generation))

    assert stale is None
    assert coordinator.current is installed
    assert coordinator.current.file_info.name == "new.xyz"


def test_stale_result_arriving_first_is_discarded(coordinator):
    old = coordinator.begin(make_info("old.xyz"), ColorMode.ALTITUDE)
    new = coordinator.begin(make_info("new.xyz"), ColorMode.ALTITUDE)

    assert coordinator.accept(old.generation, make_bundle(old.generation)) is None
    assert coordinator.current is None
    assert coordinator.pending


def test_mislabelled_result_is_contract_violation(coordinator):
    ticket = coordinator.begin(make_info(), ColorMode.ALTITUDE)

    with pytest.raises(ContractViolationError):
        coordinator.accept(ticket.generation, make_bundle(ticket.generation + 5))


def test_new_session_releases_previous(coordinator):
    released = []
    first = coordinator.begin(make_info("a.xyz"), ColorMode.ALTITUDE)
    session = coordinator.accept(first.generation, make_bundle(first.generation))
    session.on_release(lambda: released.append(first.generation))

    second = coordinator.begin(make_info("b.xyz"), ColorMode.ALTITUDE)
    # Still on screen while the next load is in flight
    assert not session.released
    coordinator.accept(second.generation, make_bundle(second.generation))

    assert session.released
    assert released == [first.generation]
    with pytest.raises(ContractViolationError):
        _ = session.bundle


def test_failed_load_keeps_previous_session(coordinator):
    first = coordinator.begin(make_info("a.xyz"), ColorMode.ALTITUDE)
    session = coordinator.accept(first.generation, make_bundle(first.generation))
    second = coordinator.begin(make_info("broken.xyz"), ColorMode.ALTITUDE)

    assert coordinator.reject(second.generation) is True
    assert coordinator.current is session
    assert not session.released
    assert not coordinator.pending


def test_failure_of_stale_load_is_ignored(coordinator):
    old = coordinator.begin(make_info("old.xyz"), ColorMode.ALTITUDE)
    coordinator.begin(make_info("new.xyz"), ColorMode.ALTITUDE)

    assert coordinator.reject(old.generation) is False


def test_dispose_releases_and_invalidates_in_flight(coordinator):
    released = []
    ticket = coordinator.begin(make_info(), ColorMode.ALTITUDE)
    session = coordinator.accept(ticket.generation, make_bundle(ticket.generation))
    session.on_release(lambda: released.append("actor"))
    in_flight = coordinator.begin(make_info("late.xyz"), ColorMode.ALTITUDE)

    coordinator.dispose()

    assert released == ["actor"]
    assert coordinator.current is None
    assert coordinator.accept(in_flight.generation, make_bundle(in_flight.generation)) is None


def test_release_runs_callbacks_once_in_reverse_order():
    calls = []
    ticket = LoadTicket(1, make_info(), ColorMode.ALTITUDE)
    session = LoadSession(ticket, make_bundle(1))
    session.on_release(lambda: calls.append("first"))
    session.on_release(lambda: calls.append("second"))

    session.release()
    session.release()

    assert calls == ["second", "first"]


def test_failing_release_callback_does_not_stop_others():
    calls = []

    def boom():
        raise RuntimeError("renderer already gone")

    with LoadSession(LoadTicket(1, make_info(), ColorMode.ALTITUDE), make_bundle(1)) as session:
        session.on_release(lambda: calls.append("kept"))
        session.on_release(boom)

    assert session.released
    assert calls == ["kept"]


def test_replace_bundle_requires_same_generation():
    session = LoadSession(LoadTicket(2, make_info(), ColorMode.ALTITUDE), make_bundle(2))

    session.replace_bundle(recolor(session.bundle, ColorMode.UNIFORM))
    assert session.bundle.color_mode == ColorMode.UNIFORM

    with pytest.raises(ContractViolationError):
        session.replace_bundle(make_bundle(3))


def test_released_session_rejects_updates():
    session = LoadSession(LoadTicket(1, make_info(), ColorMode.ALTITUDE), make_bundle(1))
    session.release()

    with pytest.raises(ContractViolationError):
        session.on_release(lambda: None)
    with pytest.raises(ContractViolationError):
        session.replace_bundle(make_bundle(1))


def test_close_current_releases_shown_load(coordinator):
    released = []
    ticket = coordinator.begin(make_info(), ColorMode.ALTITUDE)
    session = coordinator.accept(ticket.generation, make_bundle(ticket.generation))
    session.on_release(lambda: released.append("actor"))

    assert coordinator.close_current() is True

    assert released == ["actor"]
    assert session.released
    assert coordinator.current is None
    assert coordinator.close_current() is False


def test_close_current_drops_in_flight_load(coordinator):
    ticket = coordinator.begin(make_info("slow.xyz"), ColorMode.ALTITUDE)

    coordinator.close_current()

    assert not coordinator.pending
    assert coordinator.accept(ticket.generation, make_bundle(ticket.generation)) is None
    assert coordinator.reject(ticket.generation) is False


def test_coordinator_accepts_new_loads_after_close(coordinator):
    first = coordinator.begin(make_info("a.xyz"), ColorMode.ALTITUDE)
    coordinator.accept(first.generation, make_bundle(first.generation))
    coordinator.close_current()

    second = coordinator.begin(make_info("b.xyz"), ColorMode.ALTITUDE)
    session = coordinator.accept(second.generation, make_bundle(second.generation))

    assert session is coordinator.current
    assert session.file_info.name == "b.xyz"
