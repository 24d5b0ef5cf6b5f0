from exoadmin.ui.cli import run

run()
