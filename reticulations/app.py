import logging

import customtkinter as ctk

from .gui import ReticulationsApp
from .logconf import setup_logging


def main():
    setup_logging(logging.INFO)
    ctk.set_appearance_mode("System")
    app = ReticulationsApp()
    app.mainloop()


if __name__ == "__main__":
    main()
