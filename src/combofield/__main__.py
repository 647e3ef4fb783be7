from combofield.main import run

run()
