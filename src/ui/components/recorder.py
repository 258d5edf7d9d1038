"""
Recorder component: live consultation transcription on the patient page.

States: idle -> requesting -> active -> stopping -> idle

The controller runs on a ``LiveSessionRunner`` thread kept in session state.
Leaving the page (or opening another patient) closes the runner, which
stops any active recording and releases the microphone and the stream.
While recording, the panel polls the runner every ``_REFRESH_SECONDS``;
if the browser goes away the runner stops the recording by itself after
``_HEARTBEAT_SECONDS`` without a poll.
"""

import logging

import streamlit as st

from src.ui.session_runner import LiveSessionRunner, SessionSnapshot

logger = logging.getLogger(__name__)

_RUNNER_KEY = "transcription_runner"
_REFRESH_SECONDS = 1.0
_HEARTBEAT_SECONDS = 5 * _REFRESH_SECONDS


def get_runner(patient_id: str) -> LiveSessionRunner:
    """Return the runner for ``patient_id``, replacing one owned by another patient."""
    runner: LiveSessionRunner | None = st.session_state.get(_RUNNER_KEY)
    if runner is not None and runner.patient_id != patient_id:
        release_runner()
        runner = None
    if runner is None:
        runner = LiveSessionRunner(patient_id, heartbeat_timeout=_HEARTBEAT_SECONDS)
        st.session_state[_RUNNER_KEY] = runner
        # Probe the microphone once when the page is first shown
        runner.check_permission()
    return runner


def release_runner() -> None:
    """Tear down the current runner (page unmount)."""
    runner: LiveSessionRunner | None = st.session_state.pop(_RUNNER_KEY, None)
    if runner is not None:
        runner.close()


def _render_banners(snap: SessionSnapshot) -> None:
    if snap.error:
        st.error(snap.error)
    if not snap.permission_granted:
        st.warning(
            "**Microphone Permission Required**\n\n"
            "To use audio recording features, please enable microphone access "
            "in your system settings and reload the page."
        )


def _render_controls(runner: LiveSessionRunner, snap: SessionSnapshot) -> None:
    if snap.is_recording:
        if st.button("✖ Stop Recording", type="secondary", key="stop_recording"):
            runner.stop()
            st.rerun()
    else:
        busy = snap.state.value in ("requesting", "stopping")
        if st.button(
            "\U0001f3a4 Record Audio (English Only)",
            type="primary",
            key="start_recording",
            disabled=busy or not snap.permission_granted,
        ):
            with st.spinner("Connecting to transcription service..."):
                runner.start()
            st.rerun()

    if snap.recording_path and not snap.is_recording:
        st.audio(snap.recording_path)


def _render_transcripts(snap: SessionSnapshot) -> None:
    if snap.is_recording and snap.live:
        with st.container(border=True):
            st.markdown("\U0001f534 **Live Transcription (English):**")
            st.write(snap.live)

    if snap.transcript:
        st.markdown("**Transcription:**")
        # st.code renders a copy-to-clipboard button
        st.code(snap.transcript, language=None, wrap_lines=True)


def _recorder_panel(runner: LiveSessionRunner) -> None:
    snap = runner.snapshot()
    _render_banners(snap)
    _render_controls(runner, snap)
    _render_transcripts(snap)


def render_recorder(patient_id: str) -> None:
    """Render the consultation notes panel for one patient."""
    st.markdown("### Consultation Notes")
    runner = get_runner(patient_id)

    # Poll for new transcript text only while a recording is running
    run_every = _REFRESH_SECONDS if runner.snapshot().state.value != "idle" else None
    st.fragment(run_every=run_every)(_recorder_panel)(runner)
