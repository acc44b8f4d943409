#!/usr/bin/env python3
"""
Guardian Voice - Voice-activated personal safety monitor.

Listens to the microphone, transcribes speech, scores distress phrases in
English, Hindi and Marathi, and raises an alert with the user's location
when the confidence crosses the sensitivity threshold.
"""

import argparse
import json
import logging
import signal
import sys
import threading
import wave

from config import Config
from energy import AudioEnergyMonitor
from lexicon import build_lexicon
from location import fetch_location, maps_link
from scoring import DetectionResult, ScoringEngine
from session import DetectorOptions, SessionState, VoiceDetectionSession


def create_source_factory(config: Config):
    """Return a factory that opens the configured microphone."""
    # Imported here so text mode works without an audio backend
    from sources.sound_card import SoundCardSource

    microphone = config.microphone
    return lambda: SoundCardSource(microphone)


def create_recognizer_factory(config: Config, source_factory):
    """Return a recognizer factory, or None when no speech model is available."""
    from recognition import StreamingRecognizer
    from transcription import Transcriber

    vosk_config = config.vosk
    transcriber = Transcriber(
        vosk_config.get("model_path", "vosk-model-small-en-in-0.4"),
        vosk_config.get("sample_rate", 16000),
    )
    try:
        transcriber.start()
    except FileNotFoundError as e:
        print(f"Error: {e}")
        return None

    return lambda: StreamingRecognizer(transcriber, source_factory)


def format_final(text: str, confidence: float) -> str:
    """One line for a finalized transcript."""
    return f"[FINAL] {text}  (confidence {confidence:.0%})"


def format_alert(result: DetectionResult, location=None) -> str:
    """Human-readable alert text."""
    details = result.analysis
    lines = [
        f"[ALERT] Emergency detected: {result}",
        f"        Speech: \"{result.transcript}\"",
        f"        keyword={details.keyword_score:.2f} context={details.context_score:.2f} "
        f"repetition={details.repetition_score:.2f} energy={details.audio_energy_score:.2f} "
        f"final={details.final_score:.2f}",
    ]
    if location:
        lines.append(f"        Location: {location}")
        lines.append(f"        Map: {maps_link(location)}")
    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(
        description="Guardian Voice - Voice-activated personal safety monitor"
    )
    parser.add_argument(
        "--config", "-c",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--threshold", "-t",
        type=float,
        help="Sensitivity threshold 0-1 (overrides config, default: 0.6)"
    )
    parser.add_argument(
        "--single",
        action="store_true",
        help="Stop after the first utterance instead of listening continuously"
    )
    parser.add_argument(
        "--no-energy",
        action="store_true",
        help="Do not use microphone loudness as a signal"
    )
    parser.add_argument(
        "--test-file",
        metavar="FILE",
        help="Score speech from a WAV file (no microphone needed)"
    )
    parser.add_argument(
        "--text",
        nargs="+",
        metavar="TRANSCRIPT",
        help="Score the given transcripts in order (no audio needed)"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print alerts as JSON"
    )

    args = parser.parse_args()

    # Setup logging
    log_level = logging.DEBUG if args.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s %(levelname)s: %(message)s'
    )

    try:
        config = Config(args.config)
        options = config.detector_options()
        if args.threshold is not None or args.single:
            options = DetectorOptions(
                continuous=options.continuous and not args.single,
                sensitivity_threshold=(args.threshold if args.threshold is not None
                                       else options.sensitivity_threshold),
            )
        lexicon = build_lexicon(config.keywords)
        location = fetch_location(config.location)
    except (ValueError, OSError) as e:
        print(f"Configuration error: {e}")
        if args.debug:
            raise
        sys.exit(1)

    print(f"Alert location: {location}")

    def on_emergency(result: DetectionResult):
        if args.json:
            payload = result.to_dict()
            payload["location"] = {"lat": location.lat, "lng": location.lng,
                                   "address": location.address, "map": maps_link(location)}
            print(json.dumps(payload))
        else:
            print(format_alert(result, location))

    # Text mode - score transcripts and exit
    if args.text:
        engine = ScoringEngine(options.sensitivity_threshold, lexicon=lexicon)
        for transcript in args.text:
            result = engine.score(transcript)
            if result:
                on_emergency(result)
            else:
                print(format_final(transcript, engine.current_confidence))
        sys.exit(0)

    # Test file mode - transcribe a WAV file through the scoring engine and exit
    if args.test_file:
        from transcription import Transcriber

        vosk_config = config.vosk
        sample_rate = vosk_config.get("sample_rate", 16000)
        engine = ScoringEngine(options.sensitivity_threshold, lexicon=lexicon)

        print(f"Testing detection with: {args.test_file}")
        transcriber = Transcriber(vosk_config.get("model_path", "vosk-model-small-en-in-0.4"), sample_rate)
        try:
            transcriber.start()
        except FileNotFoundError as e:
            print(f"Error: {e}")
            sys.exit(1)

        def handle_final(text):
            result = engine.score(text)
            if result:
                on_emergency(result)
            else:
                print(format_final(text, engine.current_confidence))

        with wave.open(args.test_file, 'rb') as wf:
            if wf.getnchannels() != 1:
                print("Warning: WAV file is not mono, results may be poor")
            if wf.getframerate() != sample_rate:
                print(f"Warning: WAV file is {wf.getframerate()}Hz, expected {sample_rate}Hz")

            chunk_size = 4000
            while True:
                data = wf.readframes(chunk_size)
                if len(data) == 0:
                    break
                final, partial = transcriber.process_audio(data)
                if final:
                    handle_final(final[0])
                elif partial:
                    print(f"[...] {partial}", end="\r", flush=True)

            final = transcriber.get_final_result()
            if final:
                handle_final(final)

        print("\nTest complete.")
        sys.exit(0)

    # Live monitoring
    try:
        source_factory = create_source_factory(config)
    except (ImportError, OSError) as e:
        print(f"Error: audio backend unavailable: {e}")
        if args.debug:
            raise
        sys.exit(1)

    recognizer_factory = create_recognizer_factory(config, source_factory)

    energy_enabled = config.audio_energy and not args.no_energy
    monitor = AudioEnergyMonitor(source_factory if energy_enabled else None)

    engine = ScoringEngine(options.sensitivity_threshold,
                           energy_reader=lambda: monitor.energy,
                           lexicon=lexicon)

    def on_transcript(text: str):
        print(f"[...] {text}", end="\r", flush=True)

    def on_final_transcript(text: str):
        print(format_final(text, engine.current_confidence))

    session = VoiceDetectionSession(
        recognizer_factory,
        engine=engine,
        energy_monitor=monitor,
        options=options,
        on_transcript=on_transcript,
        on_emergency_detected=on_emergency,
        on_final_transcript=on_final_transcript,
        lang=config.lang,
    )

    if not session.is_supported:
        print("Speech recognition is not available - check the Vosk model path in the config")
        sys.exit(1)

    # Graceful shutdown
    stop_event = threading.Event()

    def signal_handler(_sig, _frame):
        print("\nShutting down...")
        stop_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    with session:
        if not session.start():
            print(f"Error: {session.error}")
            sys.exit(1)

        print("\n" + "=" * 50)
        print("Voice monitoring started. Press Ctrl+C to stop.")
        print(f"Threshold: {options.sensitivity_threshold:.2f}, "
              f"continuous: {'yes' if options.continuous else 'no'}, "
              f"loudness: {'on' if energy_enabled else 'off'}")
        print("Keywords include: \"help\", \"bachao\", \"madad\", \"save me\", \"sos\"...")
        print("=" * 50 + "\n")

        last_error = None
        while not stop_event.wait(0.5) and session.state != SessionState.IDLE:
            if session.error and session.error != last_error:
                print(f"\n[ERROR] {session.error}")
                last_error = session.error

    print("Cleanup complete.")


if __name__ == "__main__":
    main()
