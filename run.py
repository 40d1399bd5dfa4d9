from registrar import create_app
import os

app = create_app(os.getenv('FLASK_CONFIG') or 'default')

if __name__ == '__main__':
    app.run(host='127.0.0.1', port=int(os.getenv('PORT', 5001)), debug=app.config.get('DEBUG', False),
            use_reloader=False)
