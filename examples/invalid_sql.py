"""
Example file with intentionally invalid embedded SQL for trying the scanner.

    embedsql scan examples/

Expected: findings on the lines marked below.
"""

from System.Data.SqlClient import SqlCommand, SqlConnection


CONNECTION_STRING = "Server=localhost;Database=Shop;Trusted_Connection=True;"

# Valid, no finding
LIST_PRODUCTS = "SELECT Id, Name FROM Products ORDER BY Name;"


def list_products(conn):
    return SqlCommand(LIST_PRODUCTS, conn)


# SQL-SYNTAX-001: invalid literal at the construction site
def find_customer(conn):
    return SqlCommand("SELECT * FROM Customers WHERE Id = (1", conn)


# SQL-SYNTAX-001: invalid literal assigned to CommandText
def delete_order(conn):
    cmd = SqlCommand()
    cmd.Connection = conn
    cmd.CommandText = "DELETE FROM Orders WHERE"
    return cmd


# SQL-SYNTAX-002: invalid SQL traced through a local name
def update_stock(conn):
    query = "UPDATE Products SET Stock = WHERE Id = 1"
    return SqlCommand(query, conn)


# No finding: the SQL comes from a call and is not resolved
def dynamic(conn, build):
    return SqlCommand(build(), conn)


# No finding: suppressed inline
def legacy(conn):
    return SqlCommand("SELEC 1", conn)  # embedsql: ignore
