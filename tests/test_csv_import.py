# tests/test_csv_import.py

import pytest

from app.services.csv_import import CsvFormatError, parse_organization_csv, parse_student_csv, parse_user_csv


def test_student_rows_parsed_with_line_numbers():
    parsed = parse_student_csv(
        "Full_Name, student_email ,tutor_email\n"
        "Ana Pérez,ana@alumnos.cl,tutor@mail.cl\n"
        "\n"
        "Luis Rojas,luis@alumnos.cl,\n"
    )
    assert parsed.headers == ["full_name", "student_email", "tutor_email"]
    assert parsed.rows == [
        (2, {"full_name": "Ana Pérez", "student_email": "ana@alumnos.cl", "tutor_email": "tutor@mail.cl"}),
        (4, {"full_name": "Luis Rojas", "student_email": "luis@alumnos.cl", "tutor_email": ""}),
    ]
    assert parsed.skipped == []
    assert parsed.total_processed == 2


def test_bad_rows_are_skipped_and_reported():
    parsed = parse_student_csv(
        "full_name,student_email,tutor_email\n"
        "Solo Nombre,solo@alumnos.cl\n"
        ",sin.nombre@alumnos.cl,\n"
        "Ok Alumno,ok@alumnos.cl,\n"
    )
    assert [line for line, _ in parsed.rows] == [4]
    assert [issue.as_dict()["line"] for issue in parsed.skipped] == [2, 3]
    assert "columns" in parsed.skipped[0].reason
    assert "full_name" in parsed.skipped[1].reason
    assert parsed.total_processed == 3


def test_column_order_is_free():
    parsed = parse_student_csv("student_email,full_name,tutor_email\nana@alumnos.cl,Ana,\n")
    assert parsed.rows[0][1]["full_name"] == "Ana"


@pytest.mark.parametrize("text", ["", "full_name,student_email,tutor_email", "   \n  "])
def test_header_only_or_empty_rejected(text):
    with pytest.raises(CsvFormatError):
        parse_student_csv(text)


def test_missing_header_rejected():
    with pytest.raises(CsvFormatError):
        parse_student_csv("full_name,email\nAna,ana@alumnos.cl\n")


def test_organization_and_user_formats():
    orgs = parse_organization_csv(
        "name,subdomain,director_name,director_email,education_level\n"
        "Colegio Norte,norte,Rosa Díaz,rosa@norte.cl,Secundaria\n"
    )
    assert orgs.rows[0][1]["education_level"] == "Secundaria"

    users = parse_user_csv(
        "full_name,email,password,role,organization_name\n"
        "Pedro Gil,pedro@norte.cl,Secret123!,teacher,\n"
    )
    assert users.rows[0][1]["organization_name"] == ""
