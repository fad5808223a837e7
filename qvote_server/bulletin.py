from flask import Flask, render_template_string, jsonify, request
from flask_socketio import SocketIO
from . import config
from .handler import handle_find, handle_vote, handle_callback, handle_details


TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
<title>Quadratic Vote Dashboard</title>
<script src="https://cdnjs.cloudflare.com/ajax/libs/socket.io/4.5.1/socket.io.min.js"></script>
<style>
body { font-family: 'Segoe UI', Arial, sans-serif; background: #f4f6fa; margin: 0; }
h1 { background: #000; color: #edff38; margin: 0; padding: 24px 0; text-align: center; }
#board { max-width: 700px; margin: 32px auto; }
.card { background: #fff; border-radius: 12px; box-shadow: 0 4px 20px rgba(0,0,0,0.07); padding: 24px; margin-bottom: 24px; }
.card h2 { margin-top: 0; font-size: 1.2em; border-bottom: 1px solid #e3e7ef; padding-bottom: 8px; }
.bar { background: #edff38; height: 18px; border-radius: 4px; }
.bar.negative { background: #f1a3a3; }
.row { margin: 10px 0; }
.counts { color: #80806b; }
</style>
</head>
<body>
<h1>Quadratic Vote Dashboard</h1>
<div id="state-timer" style="text-align:center;font-size:1.3em;margin:18px 0 0 0;"></div>
<div id="board"></div>
<script>
const eventId = {{ event_id|tojson }};
const stateLabels = {"NOT_STARTED": "Starts in", "OPEN": "Ends in", "ENDED": "Event ended"};

function renderTimer(state, timeLeft) {
    if (state === "ENDED") {
        document.getElementById("state-timer").innerHTML = "<b>Event ended</b>";
        return;
    }
    const hours = Math.floor(timeLeft / 3600);
    const mins = Math.floor((timeLeft % 3600) / 60);
    document.getElementById("state-timer").innerHTML =
        `<b>${stateLabels[state] || state}</b> ${hours}h ${mins.toString().padStart(2, "0")}m`;
}

function renderBoard(data) {
    if (data.event.id !== eventId) return;
    renderTimer(data.state, data.time_left);
    const max = Math.max(1, ...data.results.map(r => Math.abs(r.votes)));
    let html = `<div class='card'><h2>${data.event.title}</h2><p>${data.event.description}</p>
        <p class='counts'>${data.voters} voters, ${data.voted} voted, ${data.signed} signed
        (${data.event.credits_per_voter} credits each)</p></div>`;
    html += "<div class='card'><h2>Results</h2>";
    data.results.forEach(r => {
        const width = Math.round(100 * Math.abs(r.votes) / max);
        html += `<div class='row'>${r.title}: <b>${r.votes}</b>
            <div class='bar ${r.votes < 0 ? "negative" : ""}' style='width:${width}%'></div></div>`;
    });
    html += "</div>";
    document.getElementById("board").innerHTML = html;
}

var socket = io();
socket.on('update', renderBoard);
fetch('/api/events/details?id=' + encodeURIComponent(eventId)).then(r => r.json()).then(renderBoard);
</script>
</body>
</html>
"""


def respond(status, body):
    if isinstance(body, dict):
        return jsonify(body), status
    return body, status


def create_app(store, signer, verifier, async_mode=None):
    app = Flask(__name__)
    socketio = SocketIO(app, async_mode=async_mode or config.ASYNC_MODE)

    @app.route("/event")
    def event_dashboard():
        return render_template_string(TEMPLATE, event_id=request.args.get("id", ""))

    @app.route("/api/events/details")
    def api_details():
        return respond(*handle_details(store, request.args.get("id")))

    @app.route("/api/events/find")
    def api_find():
        return respond(*handle_find(store, request.args.get("id")))

    @app.route("/api/events/vote", methods=["POST"])
    def api_vote():
        status, body = handle_vote(store, signer, request.get_json(silent=True))
        if status == 200:
            broadcast_board(socketio, store)
        return respond(status, body)

    @app.route("/api/events/callback", methods=["POST"])
    def api_callback():
        status, body = handle_callback(store, verifier, request.get_json(silent=True),
                                       request.headers.get("Authorization"))
        if status == 200:
            broadcast_board(socketio, store)
        return respond(status, body)

    return app, socketio


def broadcast_board(socketio, store):
    for event_id in list(store.events):
        status, data = handle_details(store, event_id)
        if status == 200:
            socketio.emit('update', data)
