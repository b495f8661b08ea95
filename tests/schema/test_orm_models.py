"""Tests for ORM model extraction."""

from dblineage.schema.orm_models import extract_orm_schema, has_model_definitions
from dblineage.schema.types import ExtractedTable


def _columns(table: ExtractedTable) -> list[str]:
    return [c.name for c in table.columns]


class TestPrismaModels:
    def test_given_mapped_models_when_extracted_then_names_and_relations_resolved(self) -> None:
        # Given
        schema = """
model User {
  id        Int      @id @default(autoincrement())
  email     String   @unique
  createdAt DateTime @map("created_at")
  posts     Post[]

  @@map("app_users")
}

model Post {
  id       Int    @id
  title    String
  authorId Int    @map("author_id")
  author   User   @relation(fields: [authorId], references: [id])
}
"""

        # When
        tables = extract_orm_schema(schema, "prisma")

        # Then
        assert [t.name for t in tables] == ["app_users", "posts"]
        users, posts = tables
        assert _columns(users) == ["id", "email", "created_at"]
        assert users.column("id").is_primary_key  # type: ignore[union-attr]
        assert _columns(posts) == ["id", "title", "author_id"]
        author_id = posts.column("author_id")
        assert author_id is not None
        assert author_id.is_foreign_key
        assert (author_id.foreign_table, author_id.foreign_column) == ("users", "id")


class TestPythonModels:
    def test_given_sqlalchemy_model_when_extracted_then_columns_typed(self) -> None:
        # Given
        source = '''
from sqlalchemy import Column, ForeignKey, Integer, Numeric
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

Base = declarative_base()


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"))
    total = Column("order_total", Numeric(10, 2))
    note: Mapped[str] = mapped_column(String(200))

    def describe(self):
        return self.id


class Helper:
    value = 1
'''

        # When
        tables = extract_orm_schema(source, "python")

        # Then
        assert [t.name for t in tables] == ["orders"]
        orders = tables[0]
        assert _columns(orders) == ["id", "user_id", "order_total", "note"]
        assert orders.column("id").is_primary_key  # type: ignore[union-attr]
        user_id = orders.column("user_id")
        assert user_id is not None
        assert (user_id.foreign_table, user_id.foreign_column) == ("users", "id")
        assert orders.column("order_total").data_type == "Numeric"  # type: ignore[union-attr]
        assert orders.column("note").data_type == "String"  # type: ignore[union-attr]

    def test_given_django_model_when_extracted_then_fk_columns_suffixed(self) -> None:
        # Given
        source = '''
from django.db import models


class Customer(models.Model):
    name = models.CharField(max_length=100)
    account = models.ForeignKey("billing.Account", on_delete=models.CASCADE)
    tags = models.ManyToManyField(Tag)
    legacy_code = models.CharField(max_length=10, db_column="LEGACY_CD")

    class Meta:
        db_table = "crm_customers"
'''

        # When
        tables = extract_orm_schema(source, "python")

        # Then
        assert [t.name for t in tables] == ["crm_customers"]
        customers = tables[0]
        assert _columns(customers) == ["name", "account_id", "LEGACY_CD"]
        account = customers.column("account_id")
        assert account is not None
        assert account.is_foreign_key
        assert (account.foreign_table, account.foreign_column) == ("accounts", "id")


class TestTypeOrmModels:
    def test_given_entity_when_extracted_then_join_columns_become_fks(self) -> None:
        # Given
        source = """
import { Entity, PrimaryGeneratedColumn, Column, ManyToOne, OneToMany, JoinColumn } from "typeorm";

@Entity("orders")
export class Order {
  @PrimaryGeneratedColumn()
  id: number;

  @Column({ name: "total_amount", type: "decimal" })
  total: number;

  @ManyToOne(() => Customer)
  @JoinColumn({ name: "customer_id" })
  customer: Customer;

  @OneToMany(() => OrderLine, (line) => line.order)
  lines: OrderLine[];
}
"""

        # When
        tables = extract_orm_schema(source, "typescript")

        # Then
        assert [t.name for t in tables] == ["orders"]
        orders = tables[0]
        assert _columns(orders) == ["id", "total_amount", "customer_id"]
        assert orders.column("id").is_primary_key  # type: ignore[union-attr]
        assert orders.column("total_amount").data_type == "decimal"  # type: ignore[union-attr]
        customer = orders.column("customer_id")
        assert customer is not None
        assert (customer.foreign_table, customer.foreign_column) == ("customers", "id")


class TestEntityFrameworkModels:
    def test_given_annotated_class_when_extracted_then_navigation_skipped(self) -> None:
        # Given
        source = """
using Microsoft.EntityFrameworkCore;

[Table("products")]
public class Product
{
    [Key]
    public int ProductId { get; set; }

    [Column("product_name")]
    public string Name { get; set; }

    public int CategoryId { get; set; }

    public virtual Category Category { get; set; }
}
"""

        # When
        tables = extract_orm_schema(source, "csharp")

        # Then
        assert [t.name for t in tables] == ["products"]
        products = tables[0]
        assert _columns(products) == ["product_id", "product_name", "category_id"]
        assert products.column("product_id").is_primary_key  # type: ignore[union-attr]
        category = products.column("category_id")
        assert category is not None
        assert category.is_foreign_key
        assert category.foreign_table == "categories"


class TestGoModels:
    def test_given_tagged_structs_when_extracted_then_tag_precedence_applied(self) -> None:
        # Given
        source = """
package models

import "time"

type User struct {
    ID        uint      `gorm:"primaryKey"`
    Email     string    `gorm:"column:email_address"`
    CreatedAt time.Time `json:"created_at"`
    OrgID     uint      `json:"org_id"`
    Org       Org       `gorm:"foreignKey:OrgID"`
}

type Org struct {
    ID   uint   `gorm:"primaryKey"`
    Name string `json:"name"`
}

func (u User) TableName() string {
    return "app_users"
}
"""

        # When
        tables = extract_orm_schema(source, "go")

        # Then
        assert [t.name for t in tables] == ["app_users", "orgs"]
        users, orgs = tables
        assert _columns(users) == ["id", "email_address", "created_at", "org_id"]
        assert users.column("id").is_primary_key  # type: ignore[union-attr]
        org_id = users.column("org_id")
        assert org_id is not None
        assert (org_id.foreign_table, org_id.foreign_column) == ("orgs", "id")
        assert _columns(orgs) == ["id", "name"]


class TestJpaModels:
    def test_given_entity_when_extracted_then_relations_and_statics_handled(self) -> None:
        # Given
        source = """
import javax.persistence.*;

@Entity
@Table(name = "invoices")
public class Invoice {
    @Id
    @GeneratedValue(strategy = GenerationType.IDENTITY)
    private Long id;

    @Column(name = "invoice_no", nullable = false)
    private String number;

    @ManyToOne
    @JoinColumn(name = "customer_id")
    private Customer customer;

    @OneToMany(mappedBy = "invoice")
    private List<InvoiceLine> lines;

    private static final long serialVersionUID = 1L;
}
"""

        # When
        tables = extract_orm_schema(source, "java")

        # Then
        assert [t.name for t in tables] == ["invoices"]
        invoices = tables[0]
        assert _columns(invoices) == ["id", "invoice_no", "customer_id"]
        assert invoices.column("id").is_primary_key  # type: ignore[union-attr]
        assert invoices.column("invoice_no").data_type == "String"  # type: ignore[union-attr]
        customer = invoices.column("customer_id")
        assert customer is not None
        assert (customer.foreign_table, customer.foreign_column) == ("customers", "id")


class TestHasModelDefinitions:
    def test_given_model_markers_when_checked_then_true(self) -> None:
        assert has_model_definitions('__tablename__ = "users"', "python")
        assert has_model_definitions("@Entity\npublic class A {}", "java")

    def test_given_plain_code_when_checked_then_false(self) -> None:
        assert not has_model_definitions("def main():\n    pass\n", "python")
        assert not has_model_definitions("anything", "ruby")

    def test_given_unsupported_language_when_extracted_then_empty(self) -> None:
        assert extract_orm_schema("class A {}", "ruby") == []
