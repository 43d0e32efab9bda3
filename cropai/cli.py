"""Command-line interface for CropAI."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from core.config.config_loader import ConfigLoader, ConfigurationError
from core.interfaces.persistence import StorageError
from core.logging_setup import setup_logging
from core.models.config import CropAIConfig
from cropai.orchestrator import CropAIOrchestrator
from modules.camera.file_select import load_selected_file

logger = logging.getLogger(__name__)


def _load_orchestrator(args) -> CropAIOrchestrator:
    """Load configuration, set up logging and start the components."""
    config_loader = ConfigLoader()
    try:
        if args.config:
            config = config_loader.load_from_file(args.config)
        else:
            config = config_loader.load_defaults()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    if getattr(args, "camera", None):
        config["camera"]["provider"] = args.camera

    setup_logging(CropAIConfig.from_dict(config).logging, verbose=args.verbose)

    orchestrator = CropAIOrchestrator(config=config)
    if not orchestrator.start():
        logger.error("Failed to start CropAI components")
        sys.exit(1)
    return orchestrator


def _print_report(report) -> None:
    result = report.result
    print(f"Image:       {report.record.id} ({report.record.file_path})")
    print(f"Status:      {report.record.analysis_status.value}")
    print(f"Crop:        {result.crop_type} ({result.crop_confidence:.0f}%)")
    if result.disease_name:
        print(f"Disease:     {result.disease_name} ({result.disease_confidence or 0:.0f}%)")
    else:
        print("Disease:     none detected")
    print(f"Severity:    {result.severity_level or '-'}")
    print(f"Description: {result.description}")
    print("Treatment:")
    for step in result.treatment_recommendations:
        print(f"  - {step}")


def cmd_server(args):
    """Start the web server.

    Args:
        args: Parsed command-line arguments
    """
    from modules.web.server import run_server

    orchestrator = _load_orchestrator(args)
    if not run_server(host=args.host, port=args.port, orchestrator=orchestrator):
        sys.exit(1)


async def _capture(orchestrator: CropAIOrchestrator, args) -> int:
    camera = orchestrator.camera
    session = await camera.start()

    if not session.ready:
        logger.error(f"Camera unavailable: {session.last_error}")
        print("Camera unavailable. Use 'cropai analyze <image>' to select a file instead.")
        return 1

    result = camera.capture()
    if not result.ok:
        logger.error(f"Capture failed: {result.error}")
        return 1

    image = result.image
    if args.output:
        Path(args.output).write_bytes(image.data)
        print(f"Saved {image.width}x{image.height} JPEG to {args.output}")

    if args.analyze:
        report = await orchestrator.pipeline.analyze(image)
        _print_report(report)
    return 0


def cmd_capture(args):
    """Capture a single still from the camera.

    Args:
        args: Parsed command-line arguments
    """
    orchestrator = _load_orchestrator(args)
    try:
        code = asyncio.run(_capture(orchestrator, args))
    except StorageError as e:
        logger.error(f"Upload failed: {e}")
        code = 1
    finally:
        orchestrator.stop()
    sys.exit(code)


def cmd_analyze(args):
    """Upload and analyze an image file.

    Args:
        args: Parsed command-line arguments
    """
    try:
        selected = load_selected_file(args.image)
    except (OSError, ValueError) as e:
        print(f"Cannot read {args.image}: {e}", file=sys.stderr)
        sys.exit(1)

    if not selected.content:
        print(f"Cannot analyze {args.image}: file is empty", file=sys.stderr)
        sys.exit(1)

    orchestrator = _load_orchestrator(args)
    try:
        report = asyncio.run(orchestrator.pipeline.analyze(selected))
        _print_report(report)
    except StorageError as e:
        logger.error(f"Analysis failed: {e}")
        sys.exit(1)
    finally:
        orchestrator.stop()


async def _chat_loop(orchestrator: CropAIOrchestrator) -> None:
    conversation = orchestrator.new_conversation()
    print(f"bot> {conversation.messages[0].text}")

    while True:
        try:
            text = await asyncio.to_thread(input, "you> ")
        except EOFError:
            print()
            return
        if text.strip().lower() in ("quit", "exit"):
            return

        exchange = await conversation.send(text)
        if exchange:
            print(f"bot> {exchange[1].text}")


def cmd_chat(args):
    """Talk to the chatbot on the terminal.

    Args:
        args: Parsed command-line arguments
    """
    orchestrator = _load_orchestrator(args)
    try:
        asyncio.run(_chat_loop(orchestrator))
    except KeyboardInterrupt:
        print()
    finally:
        orchestrator.stop()


def cmd_team(args):
    """List active team members.

    Args:
        args: Parsed command-line arguments
    """
    orchestrator = _load_orchestrator(args)
    try:
        members = orchestrator.roster.fetch()
        if orchestrator.roster.error:
            logger.error(f"Failed to load team: {orchestrator.roster.error}")
            sys.exit(1)

        if not members:
            print("No team members")
        for member in members:
            print(f"{member.display_order:>3}  {member.name} - {member.role}")
            if member.specialization:
                print(f"     {member.specialization}")
    finally:
        orchestrator.stop()


def cmd_contact(args):
    """Send a contact message.

    Args:
        args: Parsed command-line arguments
    """
    orchestrator = _load_orchestrator(args)
    try:
        if not orchestrator.contact.submit(args.name, args.email, args.message):
            print(f"Not sent: {orchestrator.contact.last_error}", file=sys.stderr)
            sys.exit(1)
        print("Message sent successfully")
    finally:
        orchestrator.stop()


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="CropAI - Crop disease detection",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    # Global options
    parser.add_argument(
        "--config",
        help="Path to configuration file"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    # Subcommands
    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command"
    )

    # Server command
    server_parser = subparsers.add_parser(
        "server",
        help="Start the web server"
    )
    server_parser.add_argument(
        "--host",
        help="Host to bind to (default: server.host from config)"
    )
    server_parser.add_argument(
        "--port",
        type=int,
        help="Port to bind to (default: server.port from config)"
    )
    server_parser.set_defaults(func=cmd_server)

    # Capture command
    capture_parser = subparsers.add_parser(
        "capture",
        help="Capture a still from the camera"
    )
    capture_parser.add_argument(
        "-o", "--output",
        help="Write the JPEG to this path"
    )
    capture_parser.add_argument(
        "--analyze",
        action="store_true",
        help="Upload and analyze the still"
    )
    capture_parser.add_argument(
        "--camera",
        help="Camera provider to use (default: camera.provider from config)"
    )
    capture_parser.set_defaults(func=cmd_capture)

    # Analyze command
    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Upload and analyze an image file"
    )
    analyze_parser.add_argument(
        "image",
        help="Path to the image file"
    )
    analyze_parser.set_defaults(func=cmd_analyze)

    # Chat command
    chat_parser = subparsers.add_parser(
        "chat",
        help="Chat with the assistant"
    )
    chat_parser.set_defaults(func=cmd_chat)

    # Team command
    team_parser = subparsers.add_parser(
        "team",
        help="List team members"
    )
    team_parser.set_defaults(func=cmd_team)

    # Contact command
    contact_parser = subparsers.add_parser(
        "contact",
        help="Send a message to the team"
    )
    contact_parser.add_argument("--name", required=True, help="Your name")
    contact_parser.add_argument("--email", required=True, help="Your email address")
    contact_parser.add_argument("--message", required=True, help="Message text")
    contact_parser.set_defaults(func=cmd_contact)

    args = parser.parse_args()

    if hasattr(args, 'func'):
        args.func(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
