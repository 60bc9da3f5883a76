import pytest

from microev.bench import main, run_benchmark


@pytest.mark.parametrize("timers", [False, True])
def test_every_fired_write_is_read(timers):
    num_pipes, num_active, num_writes = 10, 1, 10
    samples = run_benchmark(num_pipes, num_active, num_writes, timers)
    assert len(samples) == 2
    for sample in samples:
        assert sample.events == num_active + num_writes
        assert 0 <= sample.loop_us <= sample.total_us
        assert sample.iterations >= 1


def test_several_active_pipes():
    num_pipes, num_active, num_writes = 12, 3, 20
    samples = run_benchmark(num_pipes, num_active, num_writes, False)
    assert [s.events for s in samples] == [num_active + num_writes] * 2


def test_writes_default_to_number_of_pipes():
    samples = run_benchmark(6, 2)
    assert all(s.events == 2 + 6 for s in samples)


@pytest.mark.parametrize("active", [0, 11])
def test_active_count_out_of_range(active):
    with pytest.raises(ValueError):
        run_benchmark(10, active, 10, False)


def test_main_prints_two_timing_lines(capsys):
    assert main(["-n", "8", "-w", "4"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 2
    for line in lines:
        total, loop = (int(field) for field in line.split())
        assert 0 <= loop <= total


def test_main_rejects_unknown_option(capsys):
    assert main(["-x"]) == 1
    assert 'Illegal argument "x"' in capsys.readouterr().err


def test_main_rejects_zero_active(capsys):
    assert main(["-a", "0", "-n", "4"]) == 1
    assert "active" in capsys.readouterr().err