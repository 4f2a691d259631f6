import pytest

from invoice_desk.animation import (
    ManualFrameScheduler,
    PathMorphAnimator,
    Phase,
    render_morph_frames,
)
from invoice_desk.path_morph import interpolate_path

PATH_A = "M0,0L10,0"
PATH_B = "M0,10L10,10"
PATH_C = "M0,20L10,20"


@pytest.fixture
def scheduler():
    return ManualFrameScheduler()


def run_frames(scheduler, count):
    for _ in range(count):
        scheduler.advance()


def test_starts_waiting_on_initial_path(scheduler):
    animator = PathMorphAnimator(PATH_A, scheduler)

    assert animator.phase is Phase.WAITING
    assert animator.current_path == PATH_A
    assert animator.target_path == PATH_A
    assert scheduler.pending == 0


def test_same_path_while_waiting_is_a_no_op(scheduler):
    animator = PathMorphAnimator(PATH_A, scheduler)

    animator.start_animation(PATH_A)
    animator.start_animation(PATH_A)

    assert animator.phase is Phase.WAITING
    assert animator.current_path == PATH_A
    assert scheduler.pending == 0


def test_start_registers_one_frame_driver(scheduler):
    animator = PathMorphAnimator(PATH_A, scheduler)

    animator.start_animation(PATH_B)

    assert animator.phase is Phase.TRANSITIONING
    assert animator.target_path == PATH_B
    assert animator.progress == 0
    assert animator.current_path == PATH_A
    assert scheduler.pending == 1


def test_tick_advances_along_interpolation(scheduler):
    animator = PathMorphAnimator(PATH_A, scheduler)
    animator.start_animation(PATH_B)

    scheduler.advance()

    assert animator.progress == pytest.approx(0.02)
    assert animator.current_path == interpolate_path(PATH_A, PATH_B)(0.02)
    assert scheduler.pending == 1


@pytest.mark.parametrize(("rate", "ticks"), [(0.02, 50), (0.3, 4), (0.1, 10), (1, 1)])
def test_converges_within_ceil_of_inverse_rate(scheduler, rate, ticks):
    animator = PathMorphAnimator(PATH_A, scheduler, rate=rate)
    animator.start_animation(PATH_B)

    run_frames(scheduler, ticks - 1)
    assert animator.phase is Phase.TRANSITIONING

    scheduler.advance()
    assert animator.phase is Phase.WAITING
    assert animator.progress == 1
    assert animator.current_path == PATH_B
    assert scheduler.pending == 0


def test_same_target_while_transitioning_keeps_going(scheduler):
    animator = PathMorphAnimator(PATH_A, scheduler)
    animator.start_animation(PATH_B)
    run_frames(scheduler, 5)
    progress = animator.progress

    animator.start_animation(PATH_B)

    assert animator.progress == progress
    assert animator.phase is Phase.TRANSITIONING


def test_interruption_starts_from_live_midpoint(scheduler):
    animator = PathMorphAnimator(PATH_A, scheduler)
    animator.start_animation(PATH_B)
    run_frames(scheduler, 25)
    midpoint = animator.current_path

    animator.start_animation(PATH_C)

    assert animator.phase is Phase.TRANSITIONING
    assert animator.progress == 0
    assert animator.target_path == PATH_C
    assert animator.current_path == midpoint
    assert animator.interpolator(0) == midpoint
    assert scheduler.pending == 1

    scheduler.advance()

    assert animator.current_path == interpolate_path(midpoint, PATH_C)(0.02)
    assert animator.current_path != interpolate_path(PATH_A, PATH_C)(0.02)


def test_interrupted_animation_still_converges(scheduler):
    animator = PathMorphAnimator(PATH_A, scheduler)
    animator.start_animation(PATH_B)
    run_frames(scheduler, 10)
    animator.start_animation(PATH_C)

    run_frames(scheduler, 50)

    assert animator.phase is Phase.WAITING
    assert animator.current_path == PATH_C
    assert scheduler.pending == 0


def test_tick_while_waiting_does_nothing(scheduler):
    animator = PathMorphAnimator(PATH_A, scheduler)

    animator.tick()

    assert animator.phase is Phase.WAITING
    assert animator.progress == 0
    assert animator.current_path == PATH_A


def test_close_cancels_pending_frame(scheduler):
    changes = []
    animator = PathMorphAnimator(PATH_A, scheduler, on_change=changes.append)
    animator.start_animation(PATH_B)
    run_frames(scheduler, 3)

    animator.close()

    assert animator.closed
    assert scheduler.pending == 0
    assert scheduler.advance() == 0
    assert len(changes) == 3
    with pytest.raises(RuntimeError):
        animator.start_animation(PATH_C)


def test_on_change_reports_every_displayed_path(scheduler):
    changes = []
    animator = PathMorphAnimator(PATH_A, scheduler, rate=0.25, on_change=changes.append)
    animator.start_animation(PATH_B)

    run_frames(scheduler, 4)

    interpolator = interpolate_path(PATH_A, PATH_B)
    assert changes == [interpolator(0.25), interpolator(0.5), interpolator(0.75), PATH_B]


def test_restart_from_on_change_keeps_a_single_driver(scheduler):
    animator = None

    def chain(path):
        if path == PATH_B:
            animator.start_animation(PATH_C)

    animator = PathMorphAnimator(PATH_A, scheduler, rate=0.5, on_change=chain)
    animator.start_animation(PATH_B)
    run_frames(scheduler, 2)

    assert animator.phase is Phase.TRANSITIONING
    assert animator.target_path == PATH_C
    assert scheduler.pending == 1


def test_rejects_invalid_rate(scheduler):
    with pytest.raises(ValueError):
        PathMorphAnimator(PATH_A, scheduler, rate=0)


def test_render_morph_frames():
    frames = render_morph_frames(PATH_A, PATH_B)

    assert len(frames) == 50
    assert frames[0] == interpolate_path(PATH_A, PATH_B)(0.02)
    assert frames[-1] == PATH_B


def test_render_morph_frames_for_unchanged_path():
    assert render_morph_frames(PATH_A, PATH_A) == []
