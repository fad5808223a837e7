import sys
import logging
from .prompt import get_user_message, print_help, parse_command, render_session
from qvote_client.tools.api import VoteApi
from qvote_client.tools.votemanager import VoteSession
from qvote_common.errors import SubmitError, VoterNotFound, InvalidTransition

logger = logging.getLogger("qvote_client.main")

ENTRY_ROUTE = "/place?error=true"


def run_command(session, command, arg):
    """Apply one prompt command to the session; False means leave the prompt"""
    if command in ("+", "-"):
        if not isinstance(arg, int) or not 0 <= arg < len(session.event.options):
            logger.warning("Usage: + <option> / - <option> with a valid option number.")
            return True
        result = session.vote(arg, command == "+")
        if result.rejected:
            logger.warning(f"Vote rejected: {result.rejected.reason}")
        print(render_session(session))
    elif command == "toggle":
        if not isinstance(arg, int) or not 0 <= arg < len(session.event.options):
            logger.warning("Usage: toggle <option>")
            return True
        session.toggle(arg)
        print(render_session(session))
    elif command == "show":
        session.refresh()
        print(render_session(session))
    elif command == "reload":
        session.load()
        print(render_session(session))
    elif command == "submit":
        try:
            url = session.submit()
        except SubmitError as e:
            logger.error(f"Submission failed, see {e.failure_route()}")
            return False
        except InvalidTransition as e:
            logger.warning(f"Cannot submit now: {e}")
            return True
        print(render_session(session))
        logger.info(f"Open {url} in the Mudamos app. When it confirms, you are done: {session.workflow.success_route()}")
    elif command == "sign":
        try:
            session.retry_signing()
        except SubmitError as e:
            logger.error(f"Cannot resume signing, see {e.failure_route()}")
            return False
        print(render_session(session))
    elif command == "help":
        print_help()
    else:
        logger.warning("Unknown command. Type 'help' for available commands.")
    return True


def main():
    if len(sys.argv) < 2:
        logger.error("Usage: python3 -m qvote_client.main <voter_id> [command] [option]")
        return
    voter_id = sys.argv[1]
    command = sys.argv[2] if len(sys.argv) > 2 else None
    options = sys.argv[3:]

    session = VoteSession(VoteApi(), voter_id)
    try:
        session.load()
    except VoterNotFound:
        logger.error(f"Voter not found, redirecting to {ENTRY_ROUTE}")
        return

    # If a command is given, run it and exit
    if command:
        run_command(session, *parse_command(" ".join([command] + options)))
        return

    print(render_session(session))
    logger.info("Type 'help' for commands. Ctrl+D (or Ctrl+Z) to exit.")
    while True:
        message = get_user_message()
        if message is None or message.strip().lower() == "exit":
            logger.info("Exiting client.")
            break
        if not message.strip():
            continue
        try:
            if not run_command(session, *parse_command(message)):
                break
        except VoterNotFound:
            logger.error(f"Voter not found, redirecting to {ENTRY_ROUTE}")
            break


if __name__ == "__main__":
    # --- Logging setup ---
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s"
    )
    main()
