from unittest.mock import MagicMock, patch

from backup_scheduler.mysql_import import SqlImporter, iter_statements

DUMP = """-- MySQL dump 10.13
/*!40101 SET @OLD_CHARACTER_SET_CLIENT=@@CHARACTER_SET_CLIENT */;
DROP TABLE IF EXISTS `orders`;
/* plain comment; with a semicolon */
CREATE TABLE `orders` (
  `id` int NOT NULL, # trailing comment
  `note` varchar(20)
);
INSERT INTO `orders` VALUES (1,'a;b'),(2,'it''s'),(3,'back\\'slash;');
DELIMITER ;;
CREATE TRIGGER t BEFORE INSERT ON orders FOR EACH ROW BEGIN SET NEW.note = 'x'; END ;;
DELIMITER ;
SELECT "done";
"""


def test_statements_are_split_on_delimiters_outside_quotes_and_comments():
    statements = list(iter_statements(DUMP.splitlines(keepends=True)))

    assert statements[0] == "/*!40101 SET @OLD_CHARACTER_SET_CLIENT=@@CHARACTER_SET_CLIENT */"
    assert statements[1] == "DROP TABLE IF EXISTS `orders`"
    assert statements[2].startswith("CREATE TABLE `orders`")
    assert "trailing comment" not in statements[2]
    assert statements[3] == "INSERT INTO `orders` VALUES (1,'a;b'),(2,'it''s'),(3,'back\\'slash;')"
    assert statements[4] == "CREATE TRIGGER t BEFORE INSERT ON orders FOR EACH ROW BEGIN SET NEW.note = 'x'; END"
    assert statements[5] == 'SELECT "done"'
    assert len(statements) == 6


def test_statement_without_trailing_delimiter_is_kept():
    assert list(iter_statements(["SELECT 1;\n", "SELECT 2\n"])) == ["SELECT 1", "SELECT 2"]


def test_importer_executes_statements_in_order(tmp_path):
    dump = tmp_path / "shop.sql"
    dump.write_text("CREATE TABLE a (id int);\nINSERT INTO a VALUES (1);\n")
    conn = MagicMock()
    cursor = conn.cursor.return_value
    cursor.with_rows = False

    with patch("backup_scheduler.mysql_import.mysql.connector.connect", return_value=conn) as connect:
        importer = SqlImporter("db.local", 3306, "root", None, "shop")
        executed = importer.import_file(str(dump))

    assert executed == 2
    assert [c.args[0] for c in cursor.execute.call_args_list] == ["CREATE TABLE a (id int)", "INSERT INTO a VALUES (1)"]
    assert connect.call_args.kwargs["database"] == "shop"
    assert connect.call_args.kwargs["password"] == ""
    assert importer.get_imported() == [str(dump)]
    conn.close.assert_called_once()
