"""Translated front-end strings and every run option enabled."""

import argparse
import pathlib
import sys

import argpane

POLISH = argpane.Localization(
    optional="(Opcjonalne)",
    select_file="Wybierz plik...",
    select_directory="Wybierz folder...",
    new_value="Nowa wartość",
    reset="Wyczyść",
    reset_to_default="Przywróć domyślną",
    arguments="Argumenty",
    env_variables="Zmienne środowiskowe",
    error_env_var_cant_be_empty="Zmienna środowiskowa nie może być pusta",
    input="Wejście",
    text="Tekst",
    file="Plik",
    working_directory="Katalog roboczy",
    run="Uruchom",
    kill="Zakończ",
    running="Działa",
)


def main(args: argparse.Namespace) -> None:
    print(args)
    print(sys.stdin.read())


if __name__ == "__main__":
    parser = argparse.ArgumentParser(prog="App name")
    parser.add_argument("required_field")
    parser.add_argument("--optional-field")
    parser.add_argument("--field-with-default", default="default value")
    parser.add_argument("--native-path-picker", type=pathlib.Path)
    parser.add_argument("-m", dest="multiple_values", action="append")

    settings = argpane.Settings(
        enable_env="Additional env description!",
        enable_stdin="Additional stdin description!",
        enable_working_dir="Additional working dir description!",
        localization=POLISH,
    )
    sys.exit(argpane.run_parser(parser, main, settings))
