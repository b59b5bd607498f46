from gdsc_predictor import create_app
from gdsc_predictor.config import Config

app = create_app()

if __name__ == "__main__":
    # Dev server with reload
    app.run(host=Config.HOST, port=Config.PORT, debug=True)
