"""
Tests for the agenda-timer monitor, meeting export loading and CLI.
"""

import json
from datetime import timedelta

import pytest

from agenda_timer.interfaces.agenda_models import MeetingStatus
from agenda_timer.main import (
    AgendaMonitor,
    MeetingFileError,
    build_snapshot,
    load_config,
    load_meeting_file,
    main,
    render_agenda,
)


def export(status='running', started_at='2026-03-02T10:00:00Z', topics=None, order=None):
    return {
        'meeting': {
            'id': 'm1',
            'title': 'Weekly',
            'status': status,
            'scheduledAt': '2026-03-02T10:00:00Z',
            'scheduledDuration': '25',
            'topicOrder': order if order is not None else ['1', '2', '3'],
            'startedAt': started_at,
        },
        'topics': topics if topics is not None else [
            {'id': '1', 'title': 'Intro', 'duration': '10', 'isCompleted': True,
             'completedAt': '2026-03-02T10:09:00Z'},
            {'id': '2', 'title': 'Status', 'duration': '10'},
            {'id': '3', 'title': 'Roadmap', 'duration': '20'},
        ],
    }


@pytest.fixture
def meeting_file(tmp_path):
    path = tmp_path / 'meeting.json'
    path.write_text(json.dumps(export()))
    return path


@pytest.fixture
def config(tmp_path, meeting_file):
    return {
        'poll_interval': 0.01,
        'meeting': {'file': str(meeting_file)},
        'output': {'snapshot_path': str(tmp_path / 'snapshot.json'), 'health_port': 0},
    }


class TestLoadMeetingFile:
    """Test meeting export parsing."""

    def test_loads_meeting_and_topics(self, meeting_file):
        meeting, topics = load_meeting_file(meeting_file)
        assert meeting.id == 'm1'
        assert meeting.status == MeetingStatus.RUNNING
        assert meeting.topic_order == ('1', '2', '3')
        assert [t.id for t in topics] == ['1', '2', '3']
        assert topics[0].is_completed

    def test_topics_keyed_by_id(self, tmp_path):
        data = export()
        data['topics'] = {'1': {'duration': 5}, '2': {'id': '2', 'duration': 5}}
        path = tmp_path / 'keyed.json'
        path.write_text(json.dumps(data))
        _, topics = load_meeting_file(path)
        assert sorted(t.id for t in topics) == ['1', '2']

    def test_missing_file(self, tmp_path):
        with pytest.raises(MeetingFileError):
            load_meeting_file(tmp_path / 'nope.json')

    def test_invalid_json(self, tmp_path):
        path = tmp_path / 'bad.json'
        path.write_text('{')
        with pytest.raises(MeetingFileError):
            load_meeting_file(path)

    @pytest.mark.parametrize("payload", [[], {'topics': []}, {'meeting': 'x'},
                                         {'meeting': {}, 'topics': 5}])
    def test_wrong_shape(self, tmp_path, payload):
        path = tmp_path / 'shape.json'
        path.write_text(json.dumps(payload))
        with pytest.raises(MeetingFileError):
            load_meeting_file(path)

    def test_string_flags_from_export(self, tmp_path):
        data = export()
        data['topics'][0].update({'isCompleted': 'false', 'completedAt': None})
        data['topics'][1]['isDeleted'] = 'false'
        path = tmp_path / 'flags.json'
        path.write_text(json.dumps(data))
        meeting, topics = load_meeting_file(path)
        assert not topics[0].is_completed
        assert not topics[1].is_deleted
        snapshot = build_snapshot(meeting, topics, meeting.anchor + timedelta(minutes=5))
        assert snapshot.timer.active_topic_id == '1'
        assert [c.id for c in snapshot.topics] == ['1', '2', '3']

    def test_error_is_value_error(self):
        assert issubclass(MeetingFileError, ValueError)


class TestBuildSnapshot:
    """Test the full engine pass for one sample."""

    def test_running_meeting(self, meeting_file, anchor):
        meeting, topics = load_meeting_file(meeting_file)
        snapshot = build_snapshot(meeting, topics, anchor + timedelta(minutes=11), poll_count=4)

        assert snapshot.anchor == anchor
        assert [c.id for c in snapshot.topics] == ['1', '2', '3']
        assert snapshot.end_time == anchor + timedelta(minutes=40)
        assert snapshot.overrun.boundary_topic_id == '3'
        assert snapshot.overrun.boundary_offset == 0.25
        assert snapshot.timer.active_topic_id == '2'
        assert snapshot.timer.seconds_remaining == 480
        assert snapshot.poll_count == 4

    def test_planning_meeting_has_idle_timer(self, tmp_path, anchor):
        path = tmp_path / 'planning.json'
        path.write_text(json.dumps(export(status='planning', started_at=None)))
        meeting, topics = load_meeting_file(path)
        snapshot = build_snapshot(meeting, topics, anchor)
        assert snapshot.timer.is_idle
        assert len(snapshot.topics) == 3

    def test_render(self, meeting_file, anchor):
        meeting, topics = load_meeting_file(meeting_file)
        text = render_agenda(build_snapshot(meeting, topics, anchor + timedelta(minutes=11)))
        assert 'Meeting m1 [running]' in text
        assert 'Status' in text
        assert 'active 08:00' in text
        assert 'scheduled end 10:25 at 25%' in text
        assert 'Agenda ends 10:40 UTC' in text


class TestAgendaMonitor:
    """Test monitor ticks."""

    def test_tick_writes_snapshot(self, config, anchor, tmp_path):
        monitor = AgendaMonitor(config)
        snapshot = monitor.tick(anchor + timedelta(minutes=5))

        assert monitor.poll_count == 1
        assert monitor.last_snapshot is snapshot
        written = json.loads((tmp_path / 'snapshot.json').read_text())
        assert written['timer']['activeTopicId'] == '2'

    def test_tick_picks_up_file_changes(self, config, meeting_file, anchor):
        monitor = AgendaMonitor(config)
        first = monitor.tick(anchor + timedelta(minutes=15))
        assert first.timer.active_topic_id == '2'

        data = export()
        data['topics'][1].update({'isCompleted': True, 'completedAt': '2026-03-02T10:14:00Z'})
        meeting_file.write_text(json.dumps(data))

        second = monitor.tick(anchor + timedelta(minutes=15))
        assert second.timer.active_topic_id == '3'
        assert second.timer.seconds_remaining == 20 * 60 - 60
        assert second.poll_count == 2

    def test_tick_missing_file_raises(self, config, tmp_path):
        monitor = AgendaMonitor(config, meeting_file=str(tmp_path / 'missing.json'))
        with pytest.raises(MeetingFileError):
            monitor.tick()

    def test_main_loop_stops_when_meeting_ended(self, config, meeting_file):
        meeting_file.write_text(json.dumps(export(status='ended')))
        monitor = AgendaMonitor(config)
        monitor.running = True
        monitor._main_loop()
        assert monitor.running is False
        assert monitor.poll_count == 1


class TestConfig:

    def test_defaults_without_file(self):
        config = load_config(None)
        assert config['poll_interval'] == 1.0
        assert config['output']['health_port'] == 0

    def test_toml_file(self, tmp_path):
        path = tmp_path / 'config.toml'
        path.write_text('poll_interval = 2.5\n[meeting]\nfile = "x.json"\n')
        config = load_config(str(path))
        assert config['poll_interval'] == 2.5
        assert config['meeting']['file'] == 'x.json'


class TestCli:
    """Test one-shot CLI runs."""

    def test_one_shot(self, meeting_file, tmp_path, capsys):
        out = tmp_path / 'cli.json'
        code = main(['--meeting', str(meeting_file), '--output', str(out),
                     '--now', '2026-03-02T10:11:00Z'])
        assert code == 0
        assert 'active 08:00' in capsys.readouterr().out
        assert json.loads(out.read_text())['timer']['secondsRemaining'] == 480

    def test_missing_meeting_file(self, tmp_path):
        code = main(['--meeting', str(tmp_path / 'missing.json'),
                     '--output', str(tmp_path / 'cli.json')])
        assert code == 1

    def test_bad_now(self, meeting_file, tmp_path):
        code = main(['--meeting', str(meeting_file), '--output', str(tmp_path / 'cli.json'),
                     '--now', 'yesterday'])
        assert code == 2
