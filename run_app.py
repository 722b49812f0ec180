"""Launcher compatible con PyInstaller.

Importa el paquete por su nombre en lugar de ejecutar ``__main__.py`` como
archivo suelto, lo que rompería los imports relativos.
"""
def main():
    from src.farmacia_app.__main__ import main as app_main
    app_main()


if __name__ == "__main__":
    main()
