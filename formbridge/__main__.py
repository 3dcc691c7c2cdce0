from formbridge.main import run

run()
