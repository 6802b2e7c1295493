import logging

from flask import jsonify, redirect, request

from taxrunner.utils.exceptions import GameError
from taxrunner.utils.validators import parse_limit, require_fields

logger = logging.getLogger(__name__)


def get_json_body():
    """JSON body of the request, or an empty dict"""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def configure_routes(app, server):
    config = server.config

    # Error handlers
    @app.errorhandler(GameError)
    def handle_game_error(error):
        return jsonify(error.to_dict()), error.status

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Endpoint not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal server error: {error}")
        return jsonify({'error': 'internal-error'}), 500

    @app.route('/health')
    def health_check():
        """Health check endpoint"""
        return jsonify({'status': 'running'})

    # Players
    @app.route('/register', methods=['POST'])
    def register():
        """Register a new player"""
        data = get_json_body()
        admin_key = data.get('adminKey') or request.headers.get('X-Admin-Key')
        player = server.register(data.get('name'), admin_key)
        return jsonify({
            'playerId': player.player_id,
            'name': player.name,
            'credits': player.credits,
            'day': server.current_day,
            'claimCode': player.claim_code
        })

    @app.route('/status')
    def status():
        """Public game status"""
        return jsonify(server.status())

    @app.route('/me')
    def me():
        """Player profile"""
        return jsonify(server.profile(request.args.get('playerId')))

    # Winners
    @app.route('/me/winner')
    def my_winner():
        """Latest win of the player, without any claim secret or hash"""
        return jsonify(server.winner_status(request.args.get('playerId')))

    @app.route('/admin/verify-claim', methods=['POST'])
    def admin_verify_claim():
        """Admin verification of a winner's claim secret"""
        key = request.args.get('key') or request.headers.get('X-Admin-Key')
        data = get_json_body()
        record = server.verify_claim_as_admin(key, data.get('day'), data.get('playerId'),
                                              data.get('claimSecret'))
        return jsonify({'ok': True, 'winner': record.to_dict()})

    @app.route('/verify-winner', methods=['POST'])
    def verify_winner():
        """Self-service verification with claim code and secret"""
        data = get_json_body()
        require_fields(data, 'playerId', 'claimCode', 'claimSecret')

        record = server.verify_claim(data['playerId'], data['claimCode'], data['claimSecret'])
        return jsonify({
            'ok': True,
            'name': record.name,
            'score': record.score,
            'prize': record.prize,
            'day': record.day
        })

    @app.route('/yesterday-winner')
    def yesterday_winner():
        """Winner of the most recent day that had one"""
        return jsonify(server.latest_winner())

    @app.route('/winners')
    def winners():
        """Recent winners, oldest first"""
        limit = parse_limit(request.args.get('limit'), config.WINNERS_DEFAULT_LIMIT,
                            1, config.WINNERS_MAX_LIMIT)
        return jsonify(server.recent_winners(limit))

    # Runs and scores
    @app.route('/start-run', methods=['POST'])
    def start_run():
        """Issue a single-use run id"""
        run = server.start_run(get_json_body().get('playerId'))
        return jsonify({'ok': True, 'runId': run.run_id})

    @app.route('/submit-score', methods=['POST'])
    def submit_score():
        """Submit a finished run's score"""
        data = get_json_body()
        best = server.submit_score(
            data.get('playerId'),
            data.get('score'),
            run_id=data.get('runId'),
            player_name=data.get('playerName'),
            intervals=data.get('jumpIntervals'),
        )
        return jsonify({'ok': True, 'best': best})

    @app.route('/leaderboard')
    def leaderboard():
        """Top of today's leaderboard"""
        return jsonify([entry.to_dict() for entry in server.top_entries()])

    # Shop
    @app.route('/purchase', methods=['POST'])
    def purchase():
        """Buy an item with credits"""
        data = get_json_body()
        player = server.purchase(data.get('playerId'), data.get('item'))
        return jsonify({
            'ok': True,
            'credits': player.credits,
            'player': {
                'flashShieldActive': player.flash_shield_active,
                'saveFromReset': player.save_from_reset
            }
        })

    @app.route('/use-item', methods=['POST'])
    def use_item():
        """Use an active item (flashbang, leaderboard reset)"""
        data = get_json_body()
        return jsonify(server.use_item(data.get('playerId'), data.get('item')))

    @app.route('/claim-grants')
    def claim_grants():
        """Drain pending entitlement grants"""
        return jsonify(server.claim_grants(request.args.get('playerId')))

    @app.route('/set-drop', methods=['POST'])
    def set_drop():
        """Admin: change the daily prize"""
        data = get_json_body()
        amount = server.set_drop(data.get('playerId'), data.get('amount'))
        return jsonify({'ok': True, 'amount': amount})

    @app.route('/create-checkout-session', methods=['POST'])
    def create_checkout_session():
        """Payments are disabled"""
        return jsonify({'error': 'PAYMENTS_DISABLED'}), 410

    # Alias routes for older clients
    @app.route('/api/leaderboard')
    def api_leaderboard():
        return redirect('/leaderboard', code=307)

    @app.route('/api/submit', methods=['POST'])
    def api_submit():
        return submit_score()
