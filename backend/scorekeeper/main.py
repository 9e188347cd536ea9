from flask import Blueprint, jsonify
from scorekeeper.services.scoring.templates import TEMPLATES

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the scorekeeper server!'})

@main.route('/api/templates')
def list_templates():
    return jsonify([sheet.schema() for sheet in TEMPLATES.values()])

@main.route('/api/templates/<string:template_id>')
def get_template_schema(template_id):
    sheet = TEMPLATES.get(template_id)
    if not sheet:
        return jsonify({'error': 'Template not found'}), 404
    return jsonify(sheet.schema())
