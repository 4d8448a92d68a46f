from flask import jsonify


def success(data=None, message="Success", code=200):
    return jsonify({
        "status": True,
        "message": message,
        "data": data,
    }), code


def error(message="Error", code=400, errors=None):
    return jsonify({
        "status": False,
        "message": message,
        "errors": errors,
    }), code
