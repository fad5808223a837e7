from qvote_common.ledger import cost
from qvote_client.tools.reconcile import (
    EDITING_VIEW, SIGNATURE_RETRY_VIEW, WAITING_VIEW, SIGNING_VIEW, HISTORIC_VIEW, EVENT_ENDED_VIEW,
)

VIEW_MESSAGES = {
    EDITING_VIEW: "Distribute your votes, then type 'submit'.",
    SIGNATURE_RETRY_VIEW: "You already voted but did not sign with Mudamos. Type 'sign' so your vote is counted.",
    WAITING_VIEW: "This event has not started yet.",
    SIGNING_VIEW: "Sign your vote with the Mudamos app to have it counted.",
    HISTORIC_VIEW: "You already voted in this event.",
    EVENT_ENDED_VIEW: "This event has ended. See the event dashboard for results.",
}


def print_help():
    print("""
Available commands:
  help                Show this help message
  show                Show the event and your ballot
  + <option>          Add one vote to an option
  - <option>          Remove one vote from an option
  toggle <option>     Show/hide an option's description and link
  submit              Submit your ballot and get the Mudamos signing link
  sign                Resume signing a ballot you already submitted
  reload              Reload your voter record from the server
  exit                Exit the client
""")


def get_user_message():
    try:
        return input("> ")
    except EOFError:
        print("\nExiting.")
        return None


def parse_command(message):
    """'+ 2' -> ('+', 2); 'submit' -> ('submit', None)"""
    parts = message.strip().split()
    if not parts:
        return None, None
    command = parts[0].lower()
    if len(parts) == 1 and command[:1] in "+-" and command[1:].isdigit():
        return command[0], int(command[1:])
    if len(parts) > 1:
        try:
            return command, int(parts[1])
        except ValueError:
            return command, parts[1]
    return command, None


def render_session(session):
    event, ui = session.event, session.ui
    ballot = session.machine.render()
    lines = [
        f"== {event.title} ==",
        event.description,
        f"You can use up to {event.credits_per_voter} credits in this event.",
        VIEW_MESSAGES.get(ui.view, ui.view),
    ]
    if ui.view == EDITING_VIEW:
        lines.append(f"Credits remaining: {ballot.credits_remaining}/{event.credits_per_voter}")
    if ui.view in (EDITING_VIEW, HISTORIC_VIEW, EVENT_ENDED_VIEW):
        for i, option in enumerate(event.options):
            votes = ballot.allocation[i]
            lines.append(f"[{i}] {option.title}: {votes} votes ({cost(votes)} credits)")
            if ballot.expanded[i]:
                if option.description:
                    lines.append(f"     {option.description}")
                if option.url:
                    lines.append(f"     {option.url}")
    if ui.signing_url:
        lines.append(f"Mudamos signing link: {ui.signing_url}")
    return "\n".join(lines)
